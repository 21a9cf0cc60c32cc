"""Admatrix metrics layer.

Persists per-storefront aggregates to:
- SQLite: data/admatrix.db (daily, product, traffic metrics + audit events)
- JSONL: data/audit/sync_events.jsonl (append-only audit mirror)

All calendar dates are IST (+05:30) date keys.
"""
from .audit import CompositeAuditSink, JsonlAuditSink, SqliteAuditSink
from .day_buckets import date_key, day_boundaries
from .schema import init_database
from .store import SqliteMetricStore

__all__ = [
    "CompositeAuditSink",
    "JsonlAuditSink",
    "SqliteAuditSink",
    "SqliteMetricStore",
    "date_key",
    "day_boundaries",
    "init_database",
]
