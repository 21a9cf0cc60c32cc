"""Admatrix storefront metrics sync core."""

__version__ = "0.1.0"
