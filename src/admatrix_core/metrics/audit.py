"""Sync audit sinks.

Events are append-only. Sink failures never change a sync's outcome:
callers go through `record_best_effort`.
"""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional, Protocol, Sequence

import aiofiles

from ..schemas.metrics import AuditStatus, SyncAuditEvent


logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    async def record(self, event: SyncAuditEvent) -> None: ...


class SqliteAuditSink:
    """Appends events to the sync_audit_events table."""

    def __init__(self, db_conn: sqlite3.Connection) -> None:
        self.db_conn = db_conn

    async def record(self, event: SyncAuditEvent) -> None:
        self.db_conn.execute(
            """
            INSERT INTO sync_audit_events (
                storefront_id, action, status, event_time,
                duration_ms, metadata_json, error
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.storefront_id,
                event.action,
                event.status.value,
                event.timestamp.isoformat(),
                event.duration_ms,
                json.dumps(event.metadata, separators=(",", ":"), default=str),
                event.error,
            ),
        )
        self.db_conn.commit()

    def list_events(
        self,
        storefront_id: Optional[str] = None,
        status: Optional[AuditStatus] = None,
    ) -> list[SyncAuditEvent]:
        """Return events in insertion order, optionally filtered."""
        sql = """
            SELECT storefront_id, action, status, event_time,
                   duration_ms, metadata_json, error
            FROM sync_audit_events
            WHERE 1=1
        """
        params: list = []
        if storefront_id is not None:
            sql += " AND storefront_id=?"
            params.append(storefront_id)
        if status is not None:
            sql += " AND status=?"
            params.append(status.value)
        sql += " ORDER BY id"

        cursor = self.db_conn.execute(sql, params)
        return [
            SyncAuditEvent(
                storefront_id=row[0],
                action=row[1],
                status=AuditStatus(row[2]),
                timestamp=row[3],
                duration_ms=row[4],
                metadata=json.loads(row[5] or "{}"),
                error=row[6],
            )
            for row in cursor.fetchall()
        ]


class JsonlAuditSink:
    """Appends one JSON envelope per event to a JSONL file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    async def record(self, event: SyncAuditEvent) -> None:
        line = json.dumps(event.model_dump(mode="json"), separators=(",", ":"))
        async with aiofiles.open(self.path, "a", encoding="utf-8") as handle:
            await handle.write(line + "\n")


class CompositeAuditSink:
    """Fans each event out to several sinks; one failing sink does not
    stop the others."""

    def __init__(self, sinks: Sequence[AuditSink]) -> None:
        self.sinks = list(sinks)

    async def record(self, event: SyncAuditEvent) -> None:
        for sink in self.sinks:
            await record_best_effort(sink, event)


async def record_best_effort(sink: Optional[AuditSink], event: SyncAuditEvent) -> None:
    """Write an audit event, logging and swallowing any sink failure."""
    if sink is None:
        return
    try:
        await sink.record(event)
    except Exception as exc:
        logger.error(
            "Failed to record audit event %s for %s: %s",
            event.action,
            event.storefront_id,
            exc,
        )
