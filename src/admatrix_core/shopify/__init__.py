"""Shopify integration modules."""
from .client import ShopifyGraphQLClient
from .exceptions import (
    ShopifyApiError,
    ShopifyClientError,
    ShopifyGraphQLError,
    ShopifyQLParseError,
)
from .paginator import PaginationState, ShopifyOrdersPaginator

__all__ = [
    "PaginationState",
    "ShopifyGraphQLClient",
    "ShopifyOrdersPaginator",
    "ShopifyClientError",
    "ShopifyApiError",
    "ShopifyGraphQLError",
    "ShopifyQLParseError",
]
