"""Unit tests for sync audit sinks."""
import json
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from admatrix_core.metrics.audit import (
    CompositeAuditSink,
    JsonlAuditSink,
    SqliteAuditSink,
    record_best_effort,
)
from admatrix_core.schemas.metrics import AuditStatus, SyncAuditEvent


def _event(
    storefront_id="sf-a",
    action="METRICS_SYNC_STARTED",
    status=AuditStatus.PENDING,
    **kwargs,
):
    return SyncAuditEvent(
        storefront_id=storefront_id,
        action=action,
        status=status,
        timestamp=datetime(2025, 2, 2, 6, 0, tzinfo=timezone.utc),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_sqlite_sink_round_trips_events(db_conn):
    sink = SqliteAuditSink(db_conn)

    await sink.record(_event(metadata={"run_id": "run-1"}))
    await sink.record(
        _event(
            action="METRICS_SYNC_FAILED",
            status=AuditStatus.FAILURE,
            duration_ms=120,
            error="ShopifyApiError: boom",
        )
    )
    await sink.record(_event(storefront_id="sf-b"))

    events = sink.list_events(storefront_id="sf-a")
    assert [e.action for e in events] == ["METRICS_SYNC_STARTED", "METRICS_SYNC_FAILED"]
    assert events[0].metadata == {"run_id": "run-1"}
    assert events[1].duration_ms == 120
    assert events[1].error == "ShopifyApiError: boom"
    assert events[1].timestamp == datetime(2025, 2, 2, 6, 0, tzinfo=timezone.utc)

    failures = sink.list_events(status=AuditStatus.FAILURE)
    assert [e.storefront_id for e in failures] == ["sf-a"]


@pytest.mark.asyncio
async def test_jsonl_sink_appends_lines(tmp_path):
    path = tmp_path / "audit" / "events.jsonl"
    sink = JsonlAuditSink(path)

    await sink.record(_event())
    await sink.record(_event(action="METRICS_SYNC_FETCHED", status=AuditStatus.SUCCESS))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert first["action"] == "METRICS_SYNC_STARTED"
    assert first["status"] == "pending"
    assert second["status"] == "success"
    assert second["storefront_id"] == "sf-a"


@pytest.mark.asyncio
async def test_record_best_effort_swallows_failures(caplog):
    sink = MagicMock()
    sink.record = AsyncMock(side_effect=RuntimeError("disk full"))

    with caplog.at_level(logging.ERROR):
        await record_best_effort(sink, _event())

    sink.record.assert_awaited_once()
    assert "disk full" in caplog.text


@pytest.mark.asyncio
async def test_record_best_effort_without_sink():
    await record_best_effort(None, _event())


@pytest.mark.asyncio
async def test_composite_sink_continues_past_failing_sink(db_conn):
    broken = MagicMock()
    broken.record = AsyncMock(side_effect=OSError("read-only"))
    healthy = SqliteAuditSink(db_conn)

    await CompositeAuditSink([broken, healthy]).record(_event())

    assert len(healthy.list_events()) == 1
