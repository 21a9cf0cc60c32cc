"""SQLite schema definitions for storefront metrics.

Database: data/admatrix.db (WAL mode)
Tables: daily_metrics, product_metrics, traffic_metrics, sync_audit_events
"""
import logging
import sqlite3
from pathlib import Path


logger = logging.getLogger(__name__)


SCHEMA_VERSION = 1


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Open a WAL-mode connection to the metrics database."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def init_database(db_path: str | Path) -> None:
    """Initialize metrics database with schema.

    Creates tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = connect(db_path)

    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        current_version = cursor.fetchone()[0] or 0

        if current_version < SCHEMA_VERSION:
            apply_schema(conn)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info("Database schema initialized (version %s)", SCHEMA_VERSION)
        else:
            logger.debug("Database schema up to date (version %s)", current_version)

    finally:
        conn.close()


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create all metric tables and indexes on an open connection."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS daily_metrics (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            storefront_id TEXT NOT NULL,
            metric_date TEXT NOT NULL,
            facebook_spend REAL NOT NULL DEFAULT 0,
            google_spend REAL NOT NULL DEFAULT 0,
            sold_orders INTEGER NOT NULL DEFAULT 0,
            order_value REAL NOT NULL DEFAULT 0,
            sold_items INTEGER NOT NULL DEFAULT 0,
            synced_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(storefront_id, metric_date)
        )
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_daily_date
        ON daily_metrics(metric_date)
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS product_metrics (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            storefront_id TEXT NOT NULL,
            product_id TEXT NOT NULL,
            product_name TEXT,
            product_image TEXT,
            product_url TEXT,
            quantity_sold INTEGER NOT NULL DEFAULT 0,
            revenue REAL NOT NULL DEFAULT 0,
            window_start TEXT,
            window_end TEXT,
            synced_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(storefront_id, product_id)
        )
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS traffic_metrics (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            storefront_id TEXT NOT NULL,
            window_days INTEGER NOT NULL,
            landing_page_type TEXT NOT NULL,
            landing_page_path TEXT NOT NULL,
            online_store_visitors INTEGER NOT NULL DEFAULT 0,
            sessions INTEGER NOT NULL DEFAULT 0,
            sessions_with_cart_additions INTEGER NOT NULL DEFAULT 0,
            sessions_that_reached_checkout INTEGER NOT NULL DEFAULT 0,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            synced_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(storefront_id, window_days, landing_page_type, landing_page_path)
        )
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_traffic_store_start
        ON traffic_metrics(storefront_id, start_date)
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS sync_audit_events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            storefront_id TEXT NOT NULL,
            action TEXT NOT NULL,
            status TEXT NOT NULL,
            event_time TEXT NOT NULL,
            duration_ms INTEGER,
            metadata_json TEXT NOT NULL DEFAULT '{}',
            error TEXT
        )
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_audit_store_time
        ON sync_audit_events(storefront_id, event_time)
        """
    )
