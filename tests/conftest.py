"""Shared fixtures for sync unit tests."""
import json
import sqlite3
from unittest.mock import AsyncMock

import pytest

from admatrix_core.metrics.schema import apply_schema
from admatrix_core.schemas.metrics import Storefront


@pytest.fixture
def db_conn():
    conn = sqlite3.connect(":memory:")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def storefront():
    return Storefront(
        id="sf-a",
        name="Store A",
        shopify_store_url="https://store-a.myshopify.com/",
        shopify_token="shpat_store_a",
        meta_account_id="111",
    )


@pytest.fixture
def other_storefront():
    return Storefront(
        id="sf-b",
        name="Store B",
        shopify_store_url="store-b.myshopify.com",
        shopify_token="shpat_store_b",
        meta_account_id="act_222",
    )


@pytest.fixture
def make_response():
    """Build an aiohttp-style response usable as `async with ... as response`."""

    def _make(payload, status=200):
        response = AsyncMock()
        response.status = status
        response.json.return_value = payload
        response.text.return_value = json.dumps(payload)
        response.__aenter__.return_value = response
        return response

    return _make


def order_node(order_id, created_at, total, line_items=()):
    """Shopify order node payload; line_items are (quantity, product) pairs."""
    return {
        "id": order_id,
        "createdAt": created_at,
        "totalPriceSet": {"shopMoney": {"amount": total}},
        "lineItems": {
            "edges": [
                {"node": {"name": f"Item {index}", "quantity": quantity, "product": product}}
                for index, (quantity, product) in enumerate(line_items)
            ]
        },
    }


def orders_payload(nodes, has_next_page=False):
    """GraphQL response body for one page of the orders connection."""
    return {
        "data": {
            "orders": {
                "edges": [{"cursor": f"cursor-{node['id']}", "node": node} for node in nodes],
                "pageInfo": {"hasNextPage": has_next_page},
            }
        }
    }


@pytest.fixture
def order():
    return order_node


@pytest.fixture
def orders_page():
    return orders_payload
