"""Pydantic models for metric records and upstream payloads."""
