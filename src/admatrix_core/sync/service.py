"""Sync service: builds the orchestrator graph from settings per run."""
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional

import aiohttp
from redis.asyncio import Redis

from ..ads.google_spend import GoogleSpendClient
from ..ads.meta_spend import MetaSpendClient
from ..config import SyncSettings
from ..metrics.audit import CompositeAuditSink, JsonlAuditSink, SqliteAuditSink
from ..metrics.schema import connect, init_database
from ..metrics.store import SqliteMetricStore
from ..shopify.paginator import ShopifyOrdersPaginator
from .orchestrator import (
    PRODUCT_WINDOW_DAYS,
    TRAFFIC_DAILY_DAYS,
    TRAFFIC_DAILY_LIMIT,
    SyncOrchestrator,
    SyncRunResult,
)
from .registry import JsonStorefrontRegistry, StorefrontRegistry


logger = logging.getLogger(__name__)


class MetricsSyncService:
    """Owns settings and registry; opens session, database and Redis per run."""

    def __init__(
        self,
        settings: Optional[SyncSettings] = None,
        registry: Optional[StorefrontRegistry] = None,
    ) -> None:
        self.settings = settings or SyncSettings.from_env()
        self.registry = registry or JsonStorefrontRegistry(self.settings.storefronts_path)

        init_database(self.settings.db_path)

        logger.info("MetricsSyncService initialized")
        logger.info("Database: %s", self.settings.db_path)
        if not self.settings.redis_url:
            logger.warning("REDIS_URL not configured, storefront sync locks disabled")

    @asynccontextmanager
    async def open_orchestrator(self) -> AsyncIterator[SyncOrchestrator]:
        db_conn = connect(self.settings.db_path)
        redis = (
            Redis.from_url(self.settings.redis_url, decode_responses=False)
            if self.settings.redis_url
            else None
        )

        try:
            timeout = aiohttp.ClientTimeout(total=300, connect=30)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                audit_sink = CompositeAuditSink(
                    [
                        SqliteAuditSink(db_conn),
                        JsonlAuditSink(self.settings.audit_log_path),
                    ]
                )
                yield SyncOrchestrator(
                    registry=self.registry,
                    paginator=ShopifyOrdersPaginator(
                        session, api_version=self.settings.shopify_api_version
                    ),
                    meta_client=MetaSpendClient(
                        session,
                        access_token=self.settings.meta_access_token,
                        api_version=self.settings.meta_api_version,
                    ),
                    google_client=GoogleSpendClient(),
                    store=SqliteMetricStore(db_conn),
                    audit_sink=audit_sink,
                    redis=redis,
                )
        finally:
            if redis is not None:
                await redis.aclose()
            db_conn.close()

    async def run_daily_metrics(
        self,
        target_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> SyncRunResult:
        async with self.open_orchestrator() as orchestrator:
            return await orchestrator.run_daily_metrics(target_date, end_date)

    async def run_product_sync(
        self, days: Optional[int] = PRODUCT_WINDOW_DAYS
    ) -> SyncRunResult:
        async with self.open_orchestrator() as orchestrator:
            return await orchestrator.run_product_sync(days)

    async def run_traffic_sync(
        self,
        days: int = TRAFFIC_DAILY_DAYS,
        limit: int = TRAFFIC_DAILY_LIMIT,
    ) -> SyncRunResult:
        async with self.open_orchestrator() as orchestrator:
            return await orchestrator.run_traffic_sync(days, limit)

    async def sync_storefront_now(
        self, storefront_id: str, run_id: Optional[str] = None
    ) -> SyncRunResult:
        async with self.open_orchestrator() as orchestrator:
            return await orchestrator.sync_storefront_now(storefront_id, run_id=run_id)
