"""Typed views over Shopify Admin GraphQL order payloads.

Absent or null numeric strings are read as zero.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _amount(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ShopMoney(_Payload):
    amount: float = 0.0

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> float:
        return _amount(value)


class PriceSet(_Payload):
    shop_money: ShopMoney = Field(default_factory=ShopMoney, alias="shopMoney")

    @field_validator("shop_money", mode="before")
    @classmethod
    def _default_money(cls, value: Any) -> Any:
        return value or {}


class ProductImage(_Payload):
    url: Optional[str] = None


class ProductRef(_Payload):
    id: str
    title: Optional[str] = None
    handle: Optional[str] = None
    online_store_url: Optional[str] = Field(None, alias="onlineStoreUrl")
    featured_image: Optional[ProductImage] = Field(None, alias="featuredImage")


class LineItemNode(_Payload):
    name: Optional[str] = None
    quantity: int = 0
    product: Optional[ProductRef] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _parse_quantity(cls, value: Any) -> int:
        if value is None:
            return 0
        return int(value)


class LineItemEdge(_Payload):
    node: LineItemNode


class LineItemConnection(_Payload):
    edges: list[LineItemEdge] = Field(default_factory=list)


class OrderNode(_Payload):
    id: str
    created_at: datetime = Field(..., alias="createdAt")
    total_price_set: PriceSet = Field(default_factory=PriceSet, alias="totalPriceSet")
    line_items: LineItemConnection = Field(
        default_factory=LineItemConnection, alias="lineItems"
    )

    @field_validator("total_price_set", "line_items", mode="before")
    @classmethod
    def _default_nested(cls, value: Any) -> Any:
        return value or {}

    @property
    def total_value(self) -> float:
        return self.total_price_set.shop_money.amount

    @property
    def total_quantity(self) -> int:
        return sum(edge.node.quantity for edge in self.line_items.edges)


class OrderEdge(_Payload):
    cursor: str
    node: OrderNode


class PageInfo(_Payload):
    has_next_page: bool = Field(False, alias="hasNextPage")


class OrdersPage(_Payload):
    """One page of the `orders` connection."""

    edges: list[OrderEdge] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")
