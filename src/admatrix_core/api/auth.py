"""FastAPI dependencies for the sync trigger API: service lookup and API key check."""
import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..sync.service import MetricsSyncService


api_key_header = APIKeyHeader(name="X-ADMATRIX-API-KEY", auto_error=False)


def get_sync_service(request: Request) -> MetricsSyncService:
    """Return the app's sync service, building one from the environment on first use."""
    service = getattr(request.app.state, "sync_service", None)
    if service is None:
        service = MetricsSyncService()
        request.app.state.sync_service = service
    return service


async def require_api_key(
    service: Annotated[MetricsSyncService, Depends(get_sync_service)],
    api_key: Annotated[str | None, Security(api_key_header)] = None,
) -> str:
    """Check the request header against the service's configured key.

    Raises:
        RuntimeError: If the service settings carry no API key
        HTTPException: 401 if API key is missing or invalid
    """
    expected_key = service.settings.api_key

    if not expected_key:
        raise RuntimeError("ADMATRIX_API_KEY is not configured for the sync service")

    if not api_key or not hmac.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "API-Key"},
        )

    return api_key
