"""FastAPI routes for on-demand storefront syncs."""
import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..metrics.day_buckets import yesterday_ist
from ..sync.registry import StorefrontNotFoundError
from ..sync.service import MetricsSyncService
from .auth import get_sync_service, require_api_key


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["sync"])


class StorefrontSyncResponse(BaseModel):
    """Immediate response for a queued sync."""

    job_id: str = Field(..., description="Correlation id carried by the audit events")
    status: str = Field(..., description="Always 'queued' on acceptance")
    storefront_id: str
    storefront_name: str
    target_date: str = Field(..., description="IST date being synced (yesterday)")
    message: str


async def _run_storefront_sync(
    service: MetricsSyncService, job_id: str, storefront_id: str
) -> None:
    """Background task: run the daily sync for one storefront.

    This function MUST be exception-safe; all errors are caught and logged.
    """
    try:
        result = await service.sync_storefront_now(storefront_id, run_id=job_id)
        outcome = result.outcome_for(storefront_id)
        if outcome and outcome.success:
            logger.info("Job %s synced storefront %s", job_id, storefront_id)
        else:
            logger.error(
                "Job %s failed for storefront %s: %s",
                job_id,
                storefront_id,
                outcome.error if outcome else "no outcome",
            )
    except Exception as exc:
        logger.error(
            "Job %s (storefront=%s) failed with exception: %s",
            job_id,
            storefront_id,
            exc,
            exc_info=True,
        )


@router.post(
    "/stores/{storefront_id}/sync",
    response_model=StorefrontSyncResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_api_key)],
    summary="Sync one storefront for yesterday",
)
async def trigger_storefront_sync(
    storefront_id: str,
    background_tasks: BackgroundTasks,
    service: MetricsSyncService = Depends(get_sync_service),
) -> StorefrontSyncResponse:
    """Queue the daily orders + spend sync for one storefront.

    Returns immediately with a job_id; the sync runs in the background.
    """
    try:
        storefront = service.registry.get_storefront(storefront_id)
    except StorefrontNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found",
        )

    job_id = f"manual-{uuid.uuid4()}"
    background_tasks.add_task(_run_storefront_sync, service, job_id, storefront_id)

    logger.info("Queued storefront sync: job_id=%s, storefront=%s", job_id, storefront_id)

    target = yesterday_ist()
    return StorefrontSyncResponse(
        job_id=job_id,
        status="queued",
        storefront_id=storefront.id,
        storefront_name=storefront.name,
        target_date=target.isoformat(),
        message=f"Sync initiated for store: {storefront.name}",
    )
