"""Pydantic models for storefronts, metric aggregates and sync audit events."""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Storefront(BaseModel):
    """A tenant's connected Shopify and ad-account configuration."""

    id: str = Field(..., description="Registry identifier")
    name: str
    shopify_store_url: str = Field(
        ..., description="Store domain or URL (e.g., mystore.myshopify.com)"
    )
    shopify_token: str = Field(..., description="Admin API access token (never logged)")
    meta_account_id: Optional[str] = Field(
        None, description="Meta ad account ID (normalized to 'act_' prefix)"
    )
    meta_access_token: Optional[str] = Field(
        None, description="Per-store Meta token; falls back to META_ACCESS_TOKEN"
    )
    google_ads_customer_id: Optional[str] = None
    active: bool = True

    model_config = {"frozen": True}

    @field_validator("shopify_store_url")
    @classmethod
    def _normalize_domain(cls, value: str) -> str:
        domain = value.strip()
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        return domain.rstrip("/")

    @field_validator("meta_account_id")
    @classmethod
    def _normalize_account(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not value.startswith("act_"):
            return f"act_{value}"
        return value


class DateRange(BaseModel):
    """Inclusive range of IST calendar dates."""

    start: date
    end: date

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class DailyOrderAggregate(BaseModel):
    """Orders bucketed into one IST calendar day."""

    storefront_id: str
    date: str = Field(..., description="YYYY-MM-DD under +05:30")
    sold_orders: int = 0
    order_value: float = 0.0
    sold_items: int = 0


class ProductSalesAggregate(BaseModel):
    """Quantity and allocated revenue for one product over a window."""

    storefront_id: str
    product_id: str
    product_name: str = ""
    product_image: Optional[str] = None
    product_url: Optional[str] = None
    quantity_sold: int = 0
    revenue: float = 0.0
    window_start: Optional[date] = Field(None, description="None for all-time")
    window_end: Optional[date] = None


class TrafficAggregate(BaseModel):
    """Landing page traffic counts over a trailing window."""

    storefront_id: str
    landing_page_type: str = "Unknown"
    landing_page_path: str = "/"
    online_store_visitors: int = 0
    sessions: int = 0
    sessions_with_cart_additions: int = 0
    sessions_that_reached_checkout: int = 0
    window_days: int
    start_date: date
    end_date: date


class DailyMetricRecord(BaseModel):
    """Persisted per-storefront, per-day metric row."""

    storefront_id: str
    date: str
    facebook_spend: float = 0.0
    google_spend: float = 0.0
    sold_orders: int = 0
    order_value: float = 0.0
    sold_items: int = 0


class MetricTotals(BaseModel):
    """Cross-storefront totals over a date range."""

    start: date
    end: date
    storefront_count: int = 0
    facebook_spend: float = 0.0
    google_spend: float = 0.0
    total_spend: float = 0.0
    sold_orders: int = 0
    order_value: float = 0.0
    sold_items: int = 0
    roas: Optional[float] = Field(None, description="order_value / total_spend")


class AuditStatus(str, Enum):
    """Lifecycle status of a sync operation."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class SyncAuditEvent(BaseModel):
    """Append-only lifecycle record for one sync operation step."""

    storefront_id: str
    action: str = Field(..., description="e.g. METRICS_SYNC_STARTED")
    status: AuditStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    model_config = {"frozen": True}
