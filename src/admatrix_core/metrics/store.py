"""SQLite-backed metric store.

Daily rows are keyed by (storefront_id, metric_date) and upserted, so a
repeat sync of the same day replaces the previous values.
"""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional, Union

from ..schemas.metrics import (
    AuditStatus,
    DailyMetricRecord,
    DateRange,
    MetricTotals,
    ProductSalesAggregate,
    SyncAuditEvent,
    TrafficAggregate,
)
from .audit import SqliteAuditSink
from .day_buckets import resolve_range


logger = logging.getLogger(__name__)

DAILY_FIELDS = (
    "facebook_spend",
    "google_spend",
    "sold_orders",
    "order_value",
    "sold_items",
)

RangeArg = Union[DateRange, str, None]


def _date_str(value: Union[date, str]) -> str:
    return value if isinstance(value, str) else value.isoformat()


class SqliteMetricStore:
    """Upsert and query operations over the metrics database."""

    def __init__(self, db_conn: sqlite3.Connection) -> None:
        """Initialize store.

        Args:
            db_conn: SQLite connection with the metrics schema applied
        """
        self.db_conn = db_conn
        self._transaction_depth = 0

    @contextmanager
    def transaction(self) -> Iterator["SqliteMetricStore"]:
        """Group writes into one commit; any exception rolls them all back."""
        self._transaction_depth += 1
        try:
            with self.db_conn:
                yield self
        finally:
            self._transaction_depth -= 1

    def _commit(self) -> None:
        if not self._transaction_depth:
            self.db_conn.commit()

    def upsert_daily_metric(
        self,
        storefront_id: str,
        metric_date: Union[date, str],
        fields: dict,
    ) -> DailyMetricRecord:
        """Insert or replace one storefront's metrics for one IST day.

        Args:
            storefront_id: Storefront identifier
            metric_date: IST calendar date (date or YYYY-MM-DD)
            fields: Values for facebook_spend, google_spend, sold_orders,
                order_value, sold_items (missing keys default to zero)

        Returns:
            The record as written
        """
        unknown = set(fields) - set(DAILY_FIELDS)
        if unknown:
            raise ValueError(f"Unknown daily metric fields: {sorted(unknown)}")

        record = DailyMetricRecord(
            storefront_id=storefront_id,
            date=_date_str(metric_date),
            **fields,
        )

        self.db_conn.execute(
            """
            INSERT INTO daily_metrics (
                storefront_id, metric_date,
                facebook_spend, google_spend,
                sold_orders, order_value, sold_items
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(storefront_id, metric_date)
            DO UPDATE SET
                facebook_spend=excluded.facebook_spend,
                google_spend=excluded.google_spend,
                sold_orders=excluded.sold_orders,
                order_value=excluded.order_value,
                sold_items=excluded.sold_items,
                synced_at=CURRENT_TIMESTAMP
            """,
            (
                record.storefront_id,
                record.date,
                record.facebook_spend,
                record.google_spend,
                record.sold_orders,
                record.order_value,
                record.sold_items,
            ),
        )
        self._commit()
        return record

    def reset_product_aggregates(self, storefront_id: str) -> int:
        """Delete all product rows for a storefront; returns rows removed."""
        cursor = self.db_conn.execute(
            "DELETE FROM product_metrics WHERE storefront_id=?",
            (storefront_id,),
        )
        self._commit()
        logger.debug(
            "Reset %s product rows for storefront %s", cursor.rowcount, storefront_id
        )
        return cursor.rowcount

    def upsert_product_aggregate(self, aggregate: ProductSalesAggregate) -> None:
        self.db_conn.execute(
            """
            INSERT INTO product_metrics (
                storefront_id, product_id,
                product_name, product_image, product_url,
                quantity_sold, revenue, window_start, window_end
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(storefront_id, product_id)
            DO UPDATE SET
                product_name=excluded.product_name,
                product_image=excluded.product_image,
                product_url=excluded.product_url,
                quantity_sold=excluded.quantity_sold,
                revenue=excluded.revenue,
                window_start=excluded.window_start,
                window_end=excluded.window_end,
                synced_at=CURRENT_TIMESTAMP
            """,
            (
                aggregate.storefront_id,
                aggregate.product_id,
                aggregate.product_name,
                aggregate.product_image,
                aggregate.product_url,
                aggregate.quantity_sold,
                aggregate.revenue,
                aggregate.window_start.isoformat() if aggregate.window_start else None,
                aggregate.window_end.isoformat() if aggregate.window_end else None,
            ),
        )
        self._commit()

    def reset_traffic_aggregates(
        self,
        storefront_id: str,
        since_date: Union[date, str, None] = None,
        window_days: Optional[int] = None,
    ) -> int:
        """Delete a storefront's traffic rows before a window is rebuilt.

        With only window_days, every row of that window size goes regardless
        of which day's window produced it.

        Args:
            storefront_id: Storefront identifier
            since_date: Only rows whose window ends on or after this date
            window_days: Limit the reset to one lookback window size

        Returns:
            Rows removed
        """
        sql = "DELETE FROM traffic_metrics WHERE storefront_id=?"
        params: list = [storefront_id]
        if since_date is not None:
            sql += " AND end_date>=?"
            params.append(_date_str(since_date))
        if window_days is not None:
            sql += " AND window_days=?"
            params.append(window_days)

        cursor = self.db_conn.execute(sql, params)
        self._commit()
        return cursor.rowcount

    def upsert_traffic_aggregate(self, aggregate: TrafficAggregate) -> None:
        self.db_conn.execute(
            """
            INSERT INTO traffic_metrics (
                storefront_id, window_days,
                landing_page_type, landing_page_path,
                online_store_visitors, sessions,
                sessions_with_cart_additions, sessions_that_reached_checkout,
                start_date, end_date
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(storefront_id, window_days, landing_page_type, landing_page_path)
            DO UPDATE SET
                online_store_visitors=excluded.online_store_visitors,
                sessions=excluded.sessions,
                sessions_with_cart_additions=excluded.sessions_with_cart_additions,
                sessions_that_reached_checkout=excluded.sessions_that_reached_checkout,
                start_date=excluded.start_date,
                end_date=excluded.end_date,
                synced_at=CURRENT_TIMESTAMP
            """,
            (
                aggregate.storefront_id,
                aggregate.window_days,
                aggregate.landing_page_type,
                aggregate.landing_page_path,
                aggregate.online_store_visitors,
                aggregate.sessions,
                aggregate.sessions_with_cart_additions,
                aggregate.sessions_that_reached_checkout,
                aggregate.start_date.isoformat(),
                aggregate.end_date.isoformat(),
            ),
        )
        self._commit()

    def query_by_store_and_range(
        self,
        storefront_id: str,
        date_range: RangeArg = None,
        now: Optional[datetime] = None,
    ) -> list[DailyMetricRecord]:
        """Return a storefront's daily records in range, date ascending."""
        resolved = resolve_range(date_range, now)
        cursor = self.db_conn.execute(
            """
            SELECT storefront_id, metric_date, facebook_spend, google_spend,
                   sold_orders, order_value, sold_items
            FROM daily_metrics
            WHERE storefront_id=? AND metric_date BETWEEN ? AND ?
            ORDER BY metric_date
            """,
            (storefront_id, resolved.start.isoformat(), resolved.end.isoformat()),
        )
        return [
            DailyMetricRecord(
                storefront_id=row[0],
                date=row[1],
                facebook_spend=row[2],
                google_spend=row[3],
                sold_orders=row[4],
                order_value=row[5],
                sold_items=row[6],
            )
            for row in cursor.fetchall()
        ]

    def aggregate_across_stores(
        self,
        date_range: RangeArg = None,
        now: Optional[datetime] = None,
    ) -> MetricTotals:
        """Sum daily metrics over all storefronts in range."""
        resolved = resolve_range(date_range, now)
        cursor = self.db_conn.execute(
            """
            SELECT COUNT(DISTINCT storefront_id),
                   COALESCE(SUM(facebook_spend), 0),
                   COALESCE(SUM(google_spend), 0),
                   COALESCE(SUM(sold_orders), 0),
                   COALESCE(SUM(order_value), 0),
                   COALESCE(SUM(sold_items), 0)
            FROM daily_metrics
            WHERE metric_date BETWEEN ? AND ?
            """,
            (resolved.start.isoformat(), resolved.end.isoformat()),
        )
        stores, facebook, google, orders, value, items = cursor.fetchone()
        total_spend = facebook + google

        return MetricTotals(
            start=resolved.start,
            end=resolved.end,
            storefront_count=stores,
            facebook_spend=facebook,
            google_spend=google,
            total_spend=total_spend,
            sold_orders=orders,
            order_value=value,
            sold_items=items,
            roas=(value / total_spend) if total_spend > 0 else None,
        )

    def list_product_aggregates(self, storefront_id: str) -> list[ProductSalesAggregate]:
        cursor = self.db_conn.execute(
            """
            SELECT storefront_id, product_id, product_name, product_image,
                   product_url, quantity_sold, revenue, window_start, window_end
            FROM product_metrics
            WHERE storefront_id=?
            ORDER BY revenue DESC
            """,
            (storefront_id,),
        )
        return [
            ProductSalesAggregate(
                storefront_id=row[0],
                product_id=row[1],
                product_name=row[2] or "",
                product_image=row[3],
                product_url=row[4],
                quantity_sold=row[5],
                revenue=row[6],
                window_start=row[7],
                window_end=row[8],
            )
            for row in cursor.fetchall()
        ]

    def list_traffic_aggregates(
        self,
        storefront_id: str,
        window_days: Optional[int] = None,
    ) -> list[TrafficAggregate]:
        sql = """
            SELECT storefront_id, landing_page_type, landing_page_path,
                   online_store_visitors, sessions, sessions_with_cart_additions,
                   sessions_that_reached_checkout, window_days, start_date, end_date
            FROM traffic_metrics
            WHERE storefront_id=?
        """
        params: list = [storefront_id]
        if window_days is not None:
            sql += " AND window_days=?"
            params.append(window_days)
        sql += " ORDER BY sessions DESC"

        cursor = self.db_conn.execute(sql, params)
        return [
            TrafficAggregate(
                storefront_id=row[0],
                landing_page_type=row[1],
                landing_page_path=row[2],
                online_store_visitors=row[3],
                sessions=row[4],
                sessions_with_cart_additions=row[5],
                sessions_that_reached_checkout=row[6],
                window_days=row[7],
                start_date=row[8],
                end_date=row[9],
            )
            for row in cursor.fetchall()
        ]

    def delete_storefront_metrics(self, storefront_id: str) -> None:
        """Remove every metric row for a storefront (audit rows are kept)."""
        for table in ("daily_metrics", "product_metrics", "traffic_metrics"):
            self.db_conn.execute(
                f"DELETE FROM {table} WHERE storefront_id=?",
                (storefront_id,),
            )
        self._commit()
        logger.info("Deleted metrics for storefront %s", storefront_id)

    def list_audit_events(
        self,
        storefront_id: Optional[str] = None,
        status: Optional[AuditStatus] = None,
    ) -> list[SyncAuditEvent]:
        return SqliteAuditSink(self.db_conn).list_events(storefront_id, status)
