"""Public API routes — completed, reviewed requests shown on the landing page."""

from fastapi import APIRouter, Depends, Query

from app.config import get_settings
from app.domain.models.maintenance_request import RequestStatus
from app.domain.repositories.request_repository import RequestRepository
from app.domain.schemas.request import PublicRequestRead
from app.interfaces.deps import get_request_repository

settings = get_settings()
router = APIRouter(prefix="/api/public", tags=["Public"])


@router.get("/requests", response_model=list[PublicRequestRead])
def list_public_requests(
    status: RequestStatus = Query(RequestStatus.COMPLETED),
    repo: RequestRepository = Depends(get_request_repository),
):
    requests = repo.list_public_completed(status.value, settings.PUBLIC_FEED_LIMIT)
    return [PublicRequestRead.model_validate(r) for r in requests]
