"""Admatrix sync FastAPI application entry point."""
import logging
from typing import Optional

from fastapi import FastAPI

from .api.routes import router as api_router
from .sync.service import MetricsSyncService


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app(sync_service: Optional[MetricsSyncService] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        sync_service: Prebuilt service; built from the environment on
            first request when omitted
    """
    app = FastAPI(
        title="Admatrix Sync API",
        version="0.1.0",
        description="On-demand triggers for storefront metric syncs",
    )
    app.state.sync_service = sync_service

    app.include_router(api_router)

    return app


app = create_app()
