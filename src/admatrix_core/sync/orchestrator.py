"""Per-storefront sync orchestration.

Runs each sync operation over a batch of storefronts sequentially. Every
storefront is wrapped in a STARTED / FETCHED-or-FAILED audit pair, and a
failing storefront is logged, audited and skipped without aborting the
rest of the batch.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from time import monotonic
from typing import Any, Awaitable, Callable, Optional, Protocol

from redis.asyncio import Redis

from ..metrics.audit import AuditSink, record_best_effort
from ..metrics.day_buckets import start_of_day, trailing_window, yesterday_ist
from ..metrics.store import SqliteMetricStore
from ..schemas.metrics import AuditStatus, DateRange, Storefront, SyncAuditEvent
from ..shopify.paginator import ShopifyOrdersPaginator
from .locks import StorefrontSyncLock
from .registry import StorefrontRegistry


logger = logging.getLogger(__name__)

PRODUCT_WINDOW_DAYS = 30
TRAFFIC_DAILY_DAYS = 7
TRAFFIC_DAILY_LIMIT = 20
TRAFFIC_WEEKLY_DAYS = 30
TRAFFIC_WEEKLY_LIMIT = 50


class SpendClient(Protocol):
    async def fetch_spend(self, storefront: Storefront, start: date, end: date) -> float: ...


class SyncOperation(str, Enum):
    """Logical sync operations; values prefix the audit action names."""

    METRICS = "METRICS_SYNC"
    PRODUCTS = "PRODUCT_SYNC"
    TRAFFIC = "TRAFFIC_SYNC"

    def action(self, phase: str) -> str:
        return f"{self.value}_{phase}"


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class StorefrontOutcome:
    storefront_id: str
    storefront_name: str
    success: bool
    duration_ms: int
    summary: dict = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class SyncRunResult:
    """Outcome of one pass over a batch of storefronts."""

    run_id: str
    operation: SyncOperation
    state: RunState = RunState.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    outcomes: list[StorefrontOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def outcome_for(self, storefront_id: str) -> Optional[StorefrontOutcome]:
        for outcome in self.outcomes:
            if outcome.storefront_id == storefront_id:
                return outcome
        return None


StorefrontHandler = Callable[[Storefront], Awaitable[dict]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """Drives metric, product and traffic syncs across storefronts."""

    def __init__(
        self,
        registry: StorefrontRegistry,
        paginator: ShopifyOrdersPaginator,
        meta_client: SpendClient,
        google_client: SpendClient,
        store: SqliteMetricStore,
        audit_sink: Optional[AuditSink] = None,
        redis: Optional[Redis] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize orchestrator with its collaborators.

        Args:
            registry: Source of storefronts
            paginator: Shopify order walker
            meta_client: Social-ads spend adapter
            google_client: Search-ads spend adapter
            store: Metric store receiving upserts
            audit_sink: Lifecycle event sink (best-effort)
            redis: Optional Redis client for per-storefront locks
            clock: Returns the current UTC instant
        """
        self.registry = registry
        self.paginator = paginator
        self.meta_client = meta_client
        self.google_client = google_client
        self.store = store
        self.audit_sink = audit_sink
        self.redis = redis
        self.clock = clock

    # Entry points

    async def run_daily_metrics(
        self,
        target_date: Optional[date] = None,
        end_date: Optional[date] = None,
        storefronts: Optional[list[Storefront]] = None,
        run_id: Optional[str] = None,
    ) -> SyncRunResult:
        """Sync orders and spend into daily metric rows.

        Args:
            target_date: First IST date (defaults to yesterday)
            end_date: Last IST date for a backfill (defaults to target_date)
            storefronts: Explicit batch (defaults to active registry entries)
            run_id: Correlation id (generated when omitted)
        """
        start = target_date or yesterday_ist(self.clock())
        window = DateRange(start=start, end=end_date or start)

        async def handler(storefront: Storefront) -> dict:
            return await self.sync_daily_metrics_for(storefront, window)

        return await self._run(
            SyncOperation.METRICS,
            storefronts,
            handler,
            context={"from": window.start.isoformat(), "to": window.end.isoformat()},
            run_id=run_id,
        )

    async def run_product_sync(
        self,
        days: Optional[int] = PRODUCT_WINDOW_DAYS,
        storefronts: Optional[list[Storefront]] = None,
        run_id: Optional[str] = None,
    ) -> SyncRunResult:
        """Reset and rebuild product aggregates (days=None for all-time)."""
        window = trailing_window(days, self.clock()) if days else None

        async def handler(storefront: Storefront) -> dict:
            return await self.sync_products_for(storefront, window)

        context = (
            {"from": window.start.isoformat(), "to": window.end.isoformat()}
            if window
            else {"window": "all-time"}
        )
        return await self._run(
            SyncOperation.PRODUCTS, storefronts, handler, context=context, run_id=run_id
        )

    async def run_traffic_sync(
        self,
        days: int = TRAFFIC_DAILY_DAYS,
        limit: int = TRAFFIC_DAILY_LIMIT,
        storefronts: Optional[list[Storefront]] = None,
        run_id: Optional[str] = None,
    ) -> SyncRunResult:
        """Reset and rebuild landing page traffic for a trailing window."""
        window = trailing_window(days, self.clock())

        async def handler(storefront: Storefront) -> dict:
            return await self.sync_traffic_for(storefront, days, limit, window)

        return await self._run(
            SyncOperation.TRAFFIC,
            storefronts,
            handler,
            context={
                "from": window.start.isoformat(),
                "to": window.end.isoformat(),
                "limit": limit,
            },
            run_id=run_id,
        )

    async def sync_storefront_now(
        self,
        storefront_id: str,
        run_id: Optional[str] = None,
    ) -> SyncRunResult:
        """On-demand daily metrics sync of one storefront for yesterday.

        Raises:
            StorefrontNotFoundError: If the id is not in the registry
        """
        storefront = self.registry.get_storefront(storefront_id)
        return await self.run_daily_metrics(storefronts=[storefront], run_id=run_id)

    # Per-storefront operations

    async def sync_daily_metrics_for(
        self, storefront: Storefront, window: DateRange
    ) -> dict:
        orders = await self.paginator.fetch_daily_orders(
            storefront,
            start_of_day(window.start),
            start_of_day(window.end),
        )

        spends = []
        for aggregate in orders:
            day = date.fromisoformat(aggregate.date)
            spends.append(
                await asyncio.gather(
                    self.meta_client.fetch_spend(storefront, day, day),
                    self.google_client.fetch_spend(storefront, day, day),
                )
            )

        # Nothing is written unless every day fetched
        written = []
        with self.store.transaction():
            for aggregate, (facebook_spend, google_spend) in zip(orders, spends):
                record = self.store.upsert_daily_metric(
                    storefront.id,
                    aggregate.date,
                    {
                        "facebook_spend": facebook_spend,
                        "google_spend": google_spend,
                        "sold_orders": aggregate.sold_orders,
                        "order_value": aggregate.order_value,
                        "sold_items": aggregate.sold_items,
                    },
                )
                written.append(record)

        return {
            "days": len(written),
            "sold_orders": sum(record.sold_orders for record in written),
            "order_value": round(sum(record.order_value for record in written), 2),
            "sold_items": sum(record.sold_items for record in written),
            "facebook_spend": round(sum(record.facebook_spend for record in written), 2),
            "google_spend": round(sum(record.google_spend for record in written), 2),
        }

    async def sync_products_for(
        self, storefront: Storefront, window: Optional[DateRange]
    ) -> dict:
        if window:
            products = await self.paginator.fetch_product_sales(
                storefront, start_of_day(window.start), start_of_day(window.end)
            )
        else:
            products = await self.paginator.fetch_product_sales(storefront)

        with self.store.transaction():
            removed = self.store.reset_product_aggregates(storefront.id)
            for product in products:
                self.store.upsert_product_aggregate(product)

        return {
            "products": len(products),
            "removed": removed,
            "revenue": round(sum(product.revenue for product in products), 2),
        }

    async def sync_traffic_for(
        self,
        storefront: Storefront,
        days: int,
        limit: int,
        window: DateRange,
    ) -> dict:
        pages = await self.paginator.fetch_traffic_analytics(
            storefront, days, limit, window
        )

        with self.store.transaction():
            removed = self.store.reset_traffic_aggregates(storefront.id, window_days=days)
            for page in pages:
                self.store.upsert_traffic_aggregate(page)

        return {
            "landing_pages": len(pages),
            "removed": removed,
            "sessions": sum(page.sessions for page in pages),
        }

    # Batch loop

    async def _run(
        self,
        operation: SyncOperation,
        storefronts: Optional[list[Storefront]],
        handler: StorefrontHandler,
        context: dict[str, Any],
        run_id: Optional[str] = None,
    ) -> SyncRunResult:
        result = SyncRunResult(run_id=run_id or str(uuid.uuid4()), operation=operation)

        if storefronts is None:
            storefronts = [sf for sf in self.registry.list_storefronts() if sf.active]

        result.state = RunState.RUNNING
        result.started_at = self.clock()
        logger.info(
            "Starting %s run %s over %s storefronts (%s)",
            operation.value,
            result.run_id,
            len(storefronts),
            context,
        )

        for storefront in storefronts:
            outcome = await self._sync_one(
                operation, storefront, handler, context, result.run_id
            )
            result.outcomes.append(outcome)

        result.state = RunState.COMPLETED
        result.completed_at = self.clock()
        logger.info(
            "%s run %s completed: %s/%s storefronts succeeded",
            operation.value,
            result.run_id,
            result.succeeded,
            result.total,
        )
        return result

    async def _sync_one(
        self,
        operation: SyncOperation,
        storefront: Storefront,
        handler: StorefrontHandler,
        context: dict[str, Any],
        run_id: str,
    ) -> StorefrontOutcome:
        metadata = {"run_id": run_id, "storefront_name": storefront.name, **context}

        await record_best_effort(
            self.audit_sink,
            SyncAuditEvent(
                storefront_id=storefront.id,
                action=operation.action("STARTED"),
                status=AuditStatus.PENDING,
                timestamp=self.clock(),
                metadata=metadata,
            ),
        )

        started = monotonic()
        try:
            async with StorefrontSyncLock(self.redis, storefront.id):
                summary = await handler(storefront)
        except Exception as exc:
            duration_ms = int((monotonic() - started) * 1000)
            logger.error(
                "Failed %s for %s: %s",
                operation.value,
                storefront.name,
                exc,
                exc_info=True,
            )
            await record_best_effort(
                self.audit_sink,
                SyncAuditEvent(
                    storefront_id=storefront.id,
                    action=operation.action("FAILED"),
                    status=AuditStatus.FAILURE,
                    timestamp=self.clock(),
                    duration_ms=duration_ms,
                    metadata=metadata,
                    error=f"{type(exc).__name__}: {exc}",
                ),
            )
            return StorefrontOutcome(
                storefront_id=storefront.id,
                storefront_name=storefront.name,
                success=False,
                duration_ms=duration_ms,
                error=str(exc),
            )

        duration_ms = int((monotonic() - started) * 1000)
        await record_best_effort(
            self.audit_sink,
            SyncAuditEvent(
                storefront_id=storefront.id,
                action=operation.action("FETCHED"),
                status=AuditStatus.SUCCESS,
                timestamp=self.clock(),
                duration_ms=duration_ms,
                metadata={**metadata, **summary},
            ),
        )
        logger.info("Synced %s for %s: %s", operation.value, storefront.name, summary)
        return StorefrontOutcome(
            storefront_id=storefront.id,
            storefront_name=storefront.name,
            success=True,
            duration_ms=duration_ms,
            summary=summary,
        )
