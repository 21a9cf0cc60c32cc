"""Cursor-following Shopify order walker and its aggregation modes.

Modes:
- Daily orders: dense per-day totals keyed by IST date
- Product sales: per-product quantity and allocated revenue
- Traffic: one ShopifyQL landing page report (not cursor paginated)
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, AsyncIterator, Optional

import aiohttp

from ..metrics.day_buckets import (
    date_key,
    day_boundaries,
    iter_date_keys,
    to_query_timestamp,
    trailing_window,
)
from ..schemas.metrics import (
    DailyOrderAggregate,
    DateRange,
    ProductSalesAggregate,
    Storefront,
    TrafficAggregate,
)
from ..schemas.shopify import LineItemNode, OrderNode, OrdersPage, ProductRef
from .client import DEFAULT_API_VERSION, ShopifyGraphQLClient
from .exceptions import ShopifyApiError, ShopifyQLParseError
from .graphql_strings import (
    LINE_ITEMS_PAGE_SIZE,
    ORDERS_PAGE_SIZE,
    QUERY_ORDERS_SUMMARY,
    QUERY_ORDERS_WITH_PRODUCTS,
    QUERY_SHOPIFYQL,
    SHOPIFYQL_TRAFFIC_TEMPLATE,
)


logger = logging.getLogger(__name__)

UNKNOWN_PAGE_TYPE = "Unknown"
ROOT_PAGE_PATH = "/"


@dataclass(frozen=True)
class PaginationState:
    """Cursor state for one logical query; terminal when has_more is False."""

    cursor: Optional[str] = None
    has_more: bool = True

    def advance(self, page: OrdersPage) -> "PaginationState":
        if not page.edges:
            return PaginationState(cursor=self.cursor, has_more=False)
        return PaginationState(
            cursor=page.edges[-1].cursor,
            has_more=page.page_info.has_next_page,
        )


def build_created_at_filter(start: datetime, end: datetime) -> str:
    return (
        f"created_at:>='{to_query_timestamp(start)}' "
        f"AND created_at:<='{to_query_timestamp(end)}'"
    )


def allocate_order_revenue(order: OrderNode) -> list[tuple[LineItemNode, float]]:
    """Split an order's total across its product line items by quantity.

    Line items without a product are skipped and excluded from the
    quantity base, so the allocated amounts sum to the order total
    whenever at least one product line carries quantity.

    Returns:
        (line item node, allocated revenue) pairs
    """
    product_items = [
        edge.node for edge in order.line_items.edges if edge.node.product is not None
    ]
    order_quantity = sum(item.quantity for item in product_items)
    total_value = order.total_value

    allocations = []
    for item in product_items:
        if order_quantity > 0:
            revenue = (item.quantity / order_quantity) * total_value
        else:
            revenue = 0.0
        allocations.append((item, revenue))
    return allocations


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


class ShopifyOrdersPaginator:
    """Walks paginated order queries and folds them into aggregates."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_version: str = DEFAULT_API_VERSION,
    ) -> None:
        self.session = session
        self.api_version = api_version

    def client_for(self, storefront: Storefront) -> ShopifyGraphQLClient:
        return ShopifyGraphQLClient(
            storefront=storefront,
            session=self.session,
            api_version=self.api_version,
        )

    async def iter_order_pages(
        self,
        storefront: Storefront,
        query: str,
        query_string: Optional[str],
    ) -> AsyncIterator[OrdersPage]:
        """Yield order pages until the cursor state is terminal.

        Any failed page propagates and ends the walk.
        """
        client = self.client_for(storefront)
        state = PaginationState()
        page_number = 0

        while state.has_more:
            data = await client.execute(
                query,
                {
                    "first": ORDERS_PAGE_SIZE,
                    "lineItemsFirst": LINE_ITEMS_PAGE_SIZE,
                    "cursor": state.cursor,
                    "queryString": query_string,
                },
            )
            orders = data.get("orders")
            if orders is None:
                raise ShopifyApiError("Shopify response missing orders connection")

            page = OrdersPage.model_validate(orders)
            page_number += 1
            logger.debug(
                "Fetched page %s (%s orders) for %s",
                page_number,
                len(page.edges),
                storefront.name,
            )

            state = state.advance(page)
            if page.edges:
                yield page

    async def fetch_daily_orders(
        self,
        storefront: Storefront,
        start: datetime,
        end: datetime,
    ) -> list[DailyOrderAggregate]:
        """Aggregate orders per IST day over [start, end], densely.

        Args:
            storefront: Storefront to query
            start: Any instant within the first day of the range
            end: Any instant within the last day of the range

        Returns:
            One aggregate per IST calendar day in range, date ascending,
            including zero-valued days
        """
        range_start, _ = day_boundaries(start)
        _, range_end = day_boundaries(end)

        logger.info(
            "Fetching Shopify orders for %s (%s) from %s to %s",
            storefront.name,
            storefront.shopify_store_url,
            to_query_timestamp(range_start),
            to_query_timestamp(range_end),
        )

        buckets = {
            key: DailyOrderAggregate(storefront_id=storefront.id, date=key)
            for key in iter_date_keys(range_start, range_end)
        }

        async for page in self.iter_order_pages(
            storefront,
            QUERY_ORDERS_SUMMARY,
            build_created_at_filter(range_start, range_end),
        ):
            for edge in page.edges:
                order = edge.node
                key = date_key(order.created_at)
                bucket = buckets.get(key)
                if bucket is None:
                    logger.warning(
                        "Order %s dated %s falls outside requested range, skipping",
                        order.id,
                        key,
                    )
                    continue
                bucket.sold_orders += 1
                bucket.order_value += order.total_value
                bucket.sold_items += order.total_quantity

        return [buckets[key] for key in sorted(buckets)]

    async def fetch_product_sales(
        self,
        storefront: Storefront,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ProductSalesAggregate]:
        """Aggregate quantity and allocated revenue per product.

        Args:
            storefront: Storefront to query
            start: First day of the window, or None with end for all-time
            end: Last day of the window

        Returns:
            Product aggregates sorted by revenue descending
        """
        window_start: Optional[date] = None
        window_end: Optional[date] = None
        query_string: Optional[str] = None

        if start is not None and end is not None:
            range_start, _ = day_boundaries(start)
            _, range_end = day_boundaries(end)
            window_start = date.fromisoformat(date_key(range_start))
            window_end = date.fromisoformat(date_key(range_end))
            query_string = build_created_at_filter(range_start, range_end)
        elif start is not None or end is not None:
            raise ValueError("start and end must both be set or both be None")

        logger.info(
            "Fetching product sales for %s (%s)",
            storefront.name,
            f"{window_start} to {window_end}" if query_string else "all-time",
        )

        products: dict[str, ProductSalesAggregate] = {}
        order_count = 0

        async for page in self.iter_order_pages(
            storefront, QUERY_ORDERS_WITH_PRODUCTS, query_string
        ):
            for edge in page.edges:
                order_count += 1
                for item, revenue in allocate_order_revenue(edge.node):
                    product = item.product
                    aggregate = products.get(product.id)
                    if aggregate is None:
                        aggregate = ProductSalesAggregate(
                            storefront_id=storefront.id,
                            product_id=product.id,
                            product_name=product.title or item.name or "",
                            product_image=(
                                product.featured_image.url
                                if product.featured_image
                                else None
                            ),
                            product_url=self._product_url(storefront, product),
                            window_start=window_start,
                            window_end=window_end,
                        )
                        products[product.id] = aggregate
                    aggregate.quantity_sold += item.quantity
                    aggregate.revenue += revenue

        logger.info(
            "Aggregated %s products from %s orders for %s",
            len(products),
            order_count,
            storefront.name,
        )
        return sorted(products.values(), key=lambda agg: agg.revenue, reverse=True)

    async def fetch_traffic_analytics(
        self,
        storefront: Storefront,
        days: int,
        limit: int,
        window: Optional[DateRange] = None,
    ) -> list[TrafficAggregate]:
        """Fetch the top landing pages by sessions over a trailing window.

        Args:
            storefront: Storefront to query
            days: Lookback days
            limit: Maximum landing page rows
            window: IST dates queried and stored on each row (defaults to the trailing
                window ending yesterday)

        Raises:
            ShopifyQLParseError: If the analytics query reports parse errors
        """
        window = window or trailing_window(days)
        shopifyql = SHOPIFYQL_TRAFFIC_TEMPLATE.format(
            since=window.start.isoformat(),
            until=window.end.isoformat(),
            limit=limit,
        )

        client = self.client_for(storefront)
        data = await client.execute(QUERY_SHOPIFYQL, {"query": shopifyql})

        report = data.get("shopifyqlQuery")
        if report is None:
            raise ShopifyApiError("Shopify response missing shopifyqlQuery")

        parse_errors = report.get("parseErrors") or []
        if parse_errors:
            logger.error(
                "ShopifyQL parse errors for %s: %s", storefront.name, parse_errors
            )
            raise ShopifyQLParseError(parse_errors)

        table = report.get("tableData") or {}
        columns = [column.get("name") for column in table.get("columns") or []]
        raw_rows = table.get("rowData") or table.get("rows") or []

        rows: list[TrafficAggregate] = []
        for raw in raw_rows:
            row = raw if isinstance(raw, dict) else dict(zip(columns, raw))
            rows.append(
                TrafficAggregate(
                    storefront_id=storefront.id,
                    landing_page_type=row.get("landing_page_type") or UNKNOWN_PAGE_TYPE,
                    landing_page_path=row.get("landing_page_path") or ROOT_PAGE_PATH,
                    online_store_visitors=_to_int(row.get("online_store_visitors")),
                    sessions=_to_int(row.get("sessions")),
                    sessions_with_cart_additions=_to_int(
                        row.get("sessions_with_cart_additions")
                    ),
                    sessions_that_reached_checkout=_to_int(
                        row.get("sessions_that_reached_checkout")
                    ),
                    window_days=days,
                    start_date=window.start,
                    end_date=window.end,
                )
            )

        rows.sort(key=lambda row: row.sessions, reverse=True)
        logger.info(
            "Fetched %s landing pages for %s (last %s days)",
            len(rows),
            storefront.name,
            days,
        )
        return rows[:limit]

    @staticmethod
    def _product_url(storefront: Storefront, product: ProductRef) -> Optional[str]:
        if product.online_store_url:
            return product.online_store_url
        if product.handle:
            return f"https://{storefront.shopify_store_url}/products/{product.handle}"
        return None
