"""Unit tests for the Shopify order paginator (mocked aiohttp session)."""
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from admatrix_core.metrics.day_buckets import start_of_day, trailing_window
from admatrix_core.schemas.metrics import DateRange
from admatrix_core.schemas.shopify import OrderNode, OrdersPage
from admatrix_core.shopify.exceptions import (
    ShopifyApiError,
    ShopifyGraphQLError,
    ShopifyQLParseError,
)
from admatrix_core.shopify.paginator import (
    PaginationState,
    ShopifyOrdersPaginator,
    allocate_order_revenue,
    build_created_at_filter,
)


UTC = timezone.utc

PRODUCT_RING = {
    "id": "gid://shopify/Product/1",
    "title": "Silver Ring",
    "handle": "silver-ring",
    "onlineStoreUrl": None,
    "featuredImage": {"url": "https://cdn.example.com/ring.png"},
}
PRODUCT_CHAIN = {
    "id": "gid://shopify/Product/2",
    "title": "Gold Chain",
    "handle": "gold-chain",
    "onlineStoreUrl": "https://store-a.com/products/gold-chain",
    "featuredImage": None,
}


def _variables(session, call_index):
    return session.post.call_args_list[call_index].kwargs["json"]["variables"]


def test_pagination_state_advance():
    page = OrdersPage.model_validate(
        {
            "edges": [
                {"cursor": "c1", "node": {"id": "1", "createdAt": "2025-02-01T00:00:00Z"}},
                {"cursor": "c2", "node": {"id": "2", "createdAt": "2025-02-01T00:00:00Z"}},
            ],
            "pageInfo": {"hasNextPage": True},
        }
    )

    state = PaginationState().advance(page)

    assert state == PaginationState(cursor="c2", has_more=True)


def test_pagination_state_empty_page_is_terminal():
    page = OrdersPage.model_validate({"edges": [], "pageInfo": {"hasNextPage": True}})

    state = PaginationState(cursor="c9").advance(page)

    assert state.has_more is False
    assert state.cursor == "c9"


def test_build_created_at_filter():
    start = datetime(2025, 1, 31, 18, 30, tzinfo=UTC)
    end = datetime(2025, 2, 1, 18, 29, 59, 999000, tzinfo=UTC)

    assert build_created_at_filter(start, end) == (
        "created_at:>='2025-01-31T18:30:00.000Z' "
        "AND created_at:<='2025-02-01T18:29:59.999Z'"
    )


def test_allocate_order_revenue_sums_to_total(order):
    node = OrderNode.model_validate(
        order(
            "1",
            "2025-02-01T05:00:00Z",
            "100.00",
            [(1, PRODUCT_RING), (2, PRODUCT_CHAIN), (5, None)],
        )
    )

    allocations = allocate_order_revenue(node)

    assert [item.product.id for item, _ in allocations] == [
        PRODUCT_RING["id"],
        PRODUCT_CHAIN["id"],
    ]
    assert abs(sum(revenue for _, revenue in allocations) - 100.0) < 1e-6
    assert allocations[0][1] == pytest.approx(100.0 / 3)
    assert allocations[1][1] == pytest.approx(200.0 / 3)


def test_allocate_order_revenue_zero_quantity(order):
    node = OrderNode.model_validate(
        order("1", "2025-02-01T05:00:00Z", "40.00", [(0, PRODUCT_RING)])
    )

    assert [revenue for _, revenue in allocate_order_revenue(node)] == [0.0]


@pytest.mark.asyncio
async def test_fetch_daily_orders_dense_buckets(
    storefront, make_response, order, orders_page,
):
    """Days without orders still produce a zero-valued bucket."""
    session = MagicMock()
    session.post.return_value = make_response(
        orders_page(
            [
                # 00:30 IST on Feb 1
                order("1", "2025-01-31T19:00:00Z", "100.50", [(2, PRODUCT_RING), (1, None)]),
                order("2", "2025-02-03T10:00:00Z", "50", [(1, PRODUCT_CHAIN)]),
            ]
        )
    )
    paginator = ShopifyOrdersPaginator(session)

    days = await paginator.fetch_daily_orders(
        storefront,
        start_of_day(date(2025, 2, 1)),
        start_of_day(date(2025, 2, 3)),
    )

    assert [(d.date, d.sold_orders, d.order_value, d.sold_items) for d in days] == [
        ("2025-02-01", 1, 100.5, 3),
        ("2025-02-02", 0, 0.0, 0),
        ("2025-02-03", 1, 50.0, 1),
    ]
    assert all(d.storefront_id == "sf-a" for d in days)

    url = session.post.call_args_list[0].args[0]
    assert url == "https://store-a.myshopify.com/admin/api/2024-10/graphql.json"
    assert _variables(session, 0) == {
        "first": 100,
        "lineItemsFirst": 100,
        "cursor": None,
        "queryString": (
            "created_at:>='2025-01-31T18:30:00.000Z' "
            "AND created_at:<='2025-02-03T18:29:59.999Z'"
        ),
    }
    headers = session.post.call_args_list[0].kwargs["headers"]
    assert headers["X-Shopify-Access-Token"] == "shpat_store_a"


@pytest.mark.asyncio
async def test_fetch_daily_orders_two_day_scenario(storefront, make_response, orders_page):
    session = MagicMock()
    session.post.return_value = make_response(orders_page([]))
    paginator = ShopifyOrdersPaginator(session)

    days = await paginator.fetch_daily_orders(
        storefront,
        datetime(2025, 1, 31, 20, 0, tzinfo=UTC),
        datetime(2025, 2, 1, 20, 0, tzinfo=UTC),
    )

    assert [d.date for d in days] == ["2025-02-01", "2025-02-02"]


@pytest.mark.asyncio
async def test_fetch_daily_orders_follows_cursor(
    storefront, make_response, order, orders_page,
):
    session = MagicMock()
    session.post.side_effect = [
        make_response(
            orders_page(
                [
                    order("1", "2025-02-01T05:00:00Z", "10", [(1, PRODUCT_RING)]),
                    order("2", "2025-02-01T06:00:00Z", "20", [(1, PRODUCT_RING)]),
                ],
                has_next_page=True,
            )
        ),
        make_response(
            orders_page([order("3", "2025-02-01T07:00:00Z", "30", [(3, PRODUCT_RING)])])
        ),
    ]
    paginator = ShopifyOrdersPaginator(session)
    day = start_of_day(date(2025, 2, 1))

    days = await paginator.fetch_daily_orders(storefront, day, day)

    assert session.post.call_count == 2
    assert _variables(session, 0)["cursor"] is None
    assert _variables(session, 1)["cursor"] == "cursor-2"
    assert len(days) == 1
    assert days[0].sold_orders == 3
    assert days[0].order_value == 60.0
    assert days[0].sold_items == 5


@pytest.mark.asyncio
async def test_fetch_daily_orders_page_failure_aborts(
    storefront, make_response, order, orders_page,
):
    """A failed second page fails the whole fetch; no partial aggregate."""
    session = MagicMock()
    session.post.side_effect = [
        make_response(
            orders_page(
                [order("1", "2025-02-01T05:00:00Z", "10", [(1, PRODUCT_RING)])],
                has_next_page=True,
            )
        ),
        make_response({"errors": "Internal error"}, status=500),
    ]
    paginator = ShopifyOrdersPaginator(session)
    day = start_of_day(date(2025, 2, 1))

    with pytest.raises(ShopifyApiError) as exc_info:
        await paginator.fetch_daily_orders(storefront, day, day)

    assert exc_info.value.status == 500
    assert session.post.call_count == 2


@pytest.mark.asyncio
async def test_fetch_daily_orders_root_errors(storefront, make_response):
    session = MagicMock()
    session.post.return_value = make_response(
        {"errors": [{"message": "Throttled"}, {"message": "Access denied"}]}
    )
    paginator = ShopifyOrdersPaginator(session)
    day = start_of_day(date(2025, 2, 1))

    with pytest.raises(ShopifyGraphQLError) as exc_info:
        await paginator.fetch_daily_orders(storefront, day, day)

    assert "Throttled" in str(exc_info.value)
    assert "Access denied" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_daily_orders_missing_orders_connection(storefront, make_response):
    session = MagicMock()
    session.post.return_value = make_response({"data": {"shop": {}}})
    paginator = ShopifyOrdersPaginator(session)
    day = start_of_day(date(2025, 2, 1))

    with pytest.raises(ShopifyApiError):
        await paginator.fetch_daily_orders(storefront, day, day)


@pytest.mark.asyncio
async def test_fetch_daily_orders_skips_out_of_range(
    storefront, make_response, order, orders_page, caplog,
):
    session = MagicMock()
    session.post.return_value = make_response(
        orders_page(
            [
                order("1", "2025-02-01T05:00:00Z", "10", [(1, PRODUCT_RING)]),
                order("2", "2025-02-05T05:00:00Z", "99", [(1, PRODUCT_RING)]),
            ]
        )
    )
    paginator = ShopifyOrdersPaginator(session)
    day = start_of_day(date(2025, 2, 1))

    days = await paginator.fetch_daily_orders(storefront, day, day)

    assert [(d.date, d.sold_orders) for d in days] == [("2025-02-01", 1)]
    assert "outside requested range" in caplog.text


@pytest.mark.asyncio
async def test_fetch_product_sales_aggregates_across_orders(
    storefront, make_response, order, orders_page,
):
    session = MagicMock()
    session.post.return_value = make_response(
        orders_page(
            [
                order("1", "2025-02-01T05:00:00Z", "90", [(1, PRODUCT_RING), (2, PRODUCT_CHAIN)]),
                order("2", "2025-02-02T05:00:00Z", "40", [(2, PRODUCT_RING)]),
            ]
        )
    )
    paginator = ShopifyOrdersPaginator(session)

    products = await paginator.fetch_product_sales(
        storefront,
        start_of_day(date(2025, 2, 1)),
        start_of_day(date(2025, 2, 2)),
    )

    assert [p.product_id for p in products] == [PRODUCT_RING["id"], PRODUCT_CHAIN["id"]]
    ring, chain = products
    assert ring.quantity_sold == 3
    assert ring.revenue == pytest.approx(30.0 + 40.0)
    assert ring.product_url == "https://store-a.myshopify.com/products/silver-ring"
    assert ring.product_image == "https://cdn.example.com/ring.png"
    assert ring.window_start == date(2025, 2, 1)
    assert ring.window_end == date(2025, 2, 2)
    assert chain.quantity_sold == 2
    assert chain.revenue == pytest.approx(60.0)
    assert chain.product_url == "https://store-a.com/products/gold-chain"
    assert chain.product_image is None


@pytest.mark.asyncio
async def test_fetch_product_sales_all_time(storefront, make_response, orders_page):
    session = MagicMock()
    session.post.return_value = make_response(orders_page([]))
    paginator = ShopifyOrdersPaginator(session)

    products = await paginator.fetch_product_sales(storefront)

    assert products == []
    assert _variables(session, 0)["queryString"] is None


@pytest.mark.asyncio
async def test_fetch_product_sales_requires_both_bounds(storefront):
    paginator = ShopifyOrdersPaginator(MagicMock())

    with pytest.raises(ValueError):
        await paginator.fetch_product_sales(storefront, start=start_of_day(date(2025, 2, 1)))


@pytest.mark.asyncio
async def test_fetch_traffic_analytics_defaults_and_ordering(storefront, make_response):
    session = MagicMock()
    session.post.return_value = make_response(
        {
            "data": {
                "shopifyqlQuery": {
                    "__typename": "TableResponse",
                    "tableData": {
                        "columns": [
                            {"name": "landing_page_type"},
                            {"name": "landing_page_path"},
                            {"name": "online_store_visitors"},
                            {"name": "sessions"},
                            {"name": "sessions_with_cart_additions"},
                            {"name": "sessions_that_reached_checkout"},
                        ],
                        "rowData": [
                            ["Product", "/products/silver-ring", "40", "55", "8", "3"],
                            [None, "", "120", "150", "10", None],
                            ["Collection", "/collections/all", "10", "12", "1", "0"],
                        ],
                    },
                    "parseErrors": [],
                }
            }
        }
    )
    paginator = ShopifyOrdersPaginator(session)
    window = DateRange(start=date(2025, 2, 3), end=date(2025, 2, 9))

    rows = await paginator.fetch_traffic_analytics(storefront, days=7, limit=2, window=window)

    assert len(rows) == 2
    top, second = rows
    assert (top.landing_page_type, top.landing_page_path) == ("Unknown", "/")
    assert top.sessions == 150
    assert top.sessions_that_reached_checkout == 0
    assert second.landing_page_path == "/products/silver-ring"
    assert all(row.window_days == 7 for row in rows)
    assert all((row.start_date, row.end_date) == (window.start, window.end) for row in rows)

    query = _variables(session, 0)["query"]
    assert "SINCE 2025-02-03 UNTIL 2025-02-09 " in query
    assert query.endswith("LIMIT 2")


@pytest.mark.asyncio
async def test_fetch_traffic_analytics_parse_errors(storefront, make_response):
    session = MagicMock()
    session.post.return_value = make_response(
        {
            "data": {
                "shopifyqlQuery": {
                    "parseErrors": [{"code": "SYNTAX", "message": "Unexpected token"}]
                }
            }
        }
    )
    paginator = ShopifyOrdersPaginator(session)

    with pytest.raises(ShopifyQLParseError) as exc_info:
        await paginator.fetch_traffic_analytics(storefront, days=7, limit=20)

    assert "Unexpected token" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_traffic_analytics_default_window_ends_yesterday(
    storefront, make_response,
):
    """Without an explicit window the query and rows cover the trailing days."""
    session = MagicMock()
    session.post.return_value = make_response(
        {
            "data": {
                "shopifyqlQuery": {
                    "tableData": {
                        "columns": [{"name": "landing_page_path"}, {"name": "sessions"}],
                        "rowData": [["/", "9"]],
                    },
                    "parseErrors": [],
                }
            }
        }
    )
    paginator = ShopifyOrdersPaginator(session)
    expected = trailing_window(30)

    [row] = await paginator.fetch_traffic_analytics(storefront, days=30, limit=50)

    query = _variables(session, 0)["query"]
    assert f"SINCE {expected.start.isoformat()} UNTIL {expected.end.isoformat()} " in query
    assert "today" not in query
    assert (row.start_date, row.end_date) == (expected.start, expected.end)
    assert row.window_days == 30
