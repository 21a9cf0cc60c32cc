"""Environment-driven settings for the sync service."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class SyncSettings:
    """Runtime configuration read from environment variables."""

    db_path: Path
    audit_log_path: Path
    storefronts_path: Path
    shopify_api_version: str = "2024-10"
    meta_access_token: Optional[str] = None
    meta_api_version: str = "v19.0"
    redis_url: Optional[str] = None
    api_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SyncSettings":
        return cls(
            db_path=Path(os.getenv("ADMATRIX_DB_PATH", "data/admatrix.db")),
            audit_log_path=Path(
                os.getenv("ADMATRIX_AUDIT_LOG", "data/audit/sync_events.jsonl")
            ),
            storefronts_path=Path(os.getenv("STOREFRONTS_PATH", "data/storefronts.json")),
            shopify_api_version=os.getenv("SHOPIFY_API_VERSION", "2024-10"),
            meta_access_token=os.getenv("META_ACCESS_TOKEN") or None,
            meta_api_version=os.getenv("META_API_VERSION", "v19.0"),
            redis_url=os.getenv("REDIS_URL") or None,
            api_key=os.getenv("ADMATRIX_API_KEY") or None,
        )
