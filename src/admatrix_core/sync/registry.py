"""Storefront registry backed by a JSON file.

The file holds a list of storefront objects:

    [{"id": "gopivaid", "name": "gopivaid",
      "shopify_store_url": "gopivaid.myshopify.com",
      "shopify_token": "shpat_...", "meta_account_id": "act_123"}]
"""
import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from ..schemas.metrics import Storefront


logger = logging.getLogger(__name__)


class StorefrontNotFoundError(Exception):
    """Raised when a storefront id is not in the registry."""

    def __init__(self, storefront_id: str):
        self.storefront_id = storefront_id
        super().__init__(f"Storefront not found: {storefront_id}")


class StorefrontRegistry(Protocol):
    def list_storefronts(self) -> list[Storefront]: ...

    def get_storefront(self, storefront_id: str) -> Storefront: ...


class InMemoryStorefrontRegistry:
    """Registry over a fixed list of storefronts."""

    def __init__(self, storefronts: list[Storefront]) -> None:
        self._storefronts = list(storefronts)

    def list_storefronts(self) -> list[Storefront]:
        return list(self._storefronts)

    def get_storefront(self, storefront_id: str) -> Storefront:
        for storefront in self._storefronts:
            if storefront.id == storefront_id:
                return storefront
        raise StorefrontNotFoundError(storefront_id)


class JsonStorefrontRegistry:
    """Reads storefronts from disk on every call so edits apply to the next run."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def list_storefronts(self) -> list[Storefront]:
        if not self.path.exists():
            raise FileNotFoundError(
                f"Storefront registry not found: {self.path}. "
                "Create it before running a sync."
            )

        with open(self.path, encoding="utf-8") as handle:
            data = json.load(handle)

        if not isinstance(data, list):
            raise ValueError("Storefront registry must be a JSON list")

        storefronts: list[Storefront] = []
        for index, item in enumerate(data):
            try:
                storefronts.append(Storefront.model_validate(item))
            except ValidationError as exc:
                logger.error("Skipping invalid storefront entry #%s: %s", index, exc)
        return storefronts

    def get_storefront(self, storefront_id: str) -> Storefront:
        for storefront in self.list_storefronts():
            if storefront.id == storefront_id:
                return storefront
        raise StorefrontNotFoundError(storefront_id)
