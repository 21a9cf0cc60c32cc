"""Unit tests for the storefront registry and the per-storefront sync lock."""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from admatrix_core.sync.locks import StorefrontSyncLock, SyncLockedError
from admatrix_core.sync.registry import (
    InMemoryStorefrontRegistry,
    JsonStorefrontRegistry,
    StorefrontNotFoundError,
)


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_json_registry_loads_and_normalizes(tmp_path):
    path = _write(
        tmp_path / "storefronts.json",
        [
            {
                "id": "gopivaid",
                "name": "gopivaid",
                "shopify_store_url": "https://gopivaid.myshopify.com/",
                "shopify_token": "shpat_1",
                "meta_account_id": "123",
            },
            {
                "id": "juhi",
                "name": "juhi",
                "shopify_store_url": "juhi.myshopify.com",
                "shopify_token": "shpat_2",
                "active": False,
            },
        ],
    )
    registry = JsonStorefrontRegistry(path)

    storefronts = registry.list_storefronts()

    assert [sf.id for sf in storefronts] == ["gopivaid", "juhi"]
    assert storefronts[0].shopify_store_url == "gopivaid.myshopify.com"
    assert storefronts[0].meta_account_id == "act_123"
    assert storefronts[1].active is False
    assert registry.get_storefront("juhi").name == "juhi"


def test_json_registry_skips_invalid_entries(tmp_path, caplog):
    path = _write(
        tmp_path / "storefronts.json",
        [
            {"id": "broken", "name": "broken"},
            {
                "id": "ok",
                "name": "ok",
                "shopify_store_url": "ok.myshopify.com",
                "shopify_token": "shpat_ok",
            },
        ],
    )

    storefronts = JsonStorefrontRegistry(path).list_storefronts()

    assert [sf.id for sf in storefronts] == ["ok"]
    assert "Skipping invalid storefront entry #0" in caplog.text


def test_json_registry_rereads_file(tmp_path):
    entry = {
        "id": "a",
        "name": "A",
        "shopify_store_url": "a.myshopify.com",
        "shopify_token": "t",
    }
    path = _write(tmp_path / "storefronts.json", [entry])
    registry = JsonStorefrontRegistry(path)
    assert len(registry.list_storefronts()) == 1

    _write(path, [entry, {**entry, "id": "b", "name": "B"}])

    assert [sf.id for sf in registry.list_storefronts()] == ["a", "b"]


def test_json_registry_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        JsonStorefrontRegistry(tmp_path / "absent.json").list_storefronts()


def test_json_registry_requires_list(tmp_path):
    path = _write(tmp_path / "storefronts.json", {"id": "a"})

    with pytest.raises(ValueError):
        JsonStorefrontRegistry(path).list_storefronts()


def test_registry_unknown_id(storefront):
    registry = InMemoryStorefrontRegistry([storefront])

    with pytest.raises(StorefrontNotFoundError) as exc_info:
        registry.get_storefront("nope")

    assert exc_info.value.storefront_id == "nope"


@pytest.mark.asyncio
async def test_sync_lock_noop_without_redis():
    async with StorefrontSyncLock(None, "sf-a") as lock:
        assert lock.lock_key == "admatrix:sync_lock:sf-a"


@pytest.mark.asyncio
async def test_sync_lock_acquire_and_release():
    redis = MagicMock()

    with patch("admatrix_core.sync.locks.AsyncRedisLock") as lock_cls:
        lock = lock_cls.return_value
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock()

        async with StorefrontSyncLock(redis, "sf-a", ttl_seconds=60):
            lock.release.assert_not_awaited()

    lock_cls.assert_called_once_with(
        redis, name="admatrix:sync_lock:sf-a", timeout=60, blocking=False
    )
    lock.acquire.assert_awaited_once_with(blocking=False)
    lock.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_sync_lock_held_elsewhere():
    with patch("admatrix_core.sync.locks.AsyncRedisLock") as lock_cls:
        lock_cls.return_value.acquire = AsyncMock(return_value=False)

        with pytest.raises(SyncLockedError) as exc_info:
            async with StorefrontSyncLock(MagicMock(), "sf-a"):
                pass

    assert exc_info.value.storefront_id == "sf-a"


@pytest.mark.asyncio
async def test_sync_lock_release_failure_is_logged(caplog):
    with patch("admatrix_core.sync.locks.AsyncRedisLock") as lock_cls:
        lock = lock_cls.return_value
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock(side_effect=RuntimeError("lock expired"))

        async with StorefrontSyncLock(MagicMock(), "sf-a"):
            pass

    assert "Failed to release sync lock" in caplog.text
