"""API log query endpoint."""

from datetime import timedelta

from fastapi import APIRouter, Depends, Query

from src.core.dependencies.rate_limiting import get_log_repository
from src.core.rate_limit import api_logger
from src.domain.rate_limiting.repositories import ApiLogRepository
from src.domain.rate_limiting.value_objects import utc_now

from .schemas import ApiLogListResponse, ApiLogResponse

router = APIRouter(dependencies=[Depends(api_logger("Logs"))])


@router.get("", response_model=ApiLogListResponse)
async def get_logs(
    minutes: int = Query(60, ge=1, le=10080, description="Look-back window in minutes"),
    repository: ApiLogRepository = Depends(get_log_repository),
):
    """Return API log entries that started within the last ``minutes``."""
    since = utc_now() - timedelta(minutes=minutes)
    entries = await repository.get_logs_since(since)
    return ApiLogListResponse(
        since=since,
        count=len(entries),
        logs=[ApiLogResponse.from_entity(entry) for entry in entries],
    )
