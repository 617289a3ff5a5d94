from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from structlog import get_logger

from src.core.config.settings import Settings
from src.core.dependencies.rate_limiting import get_app_settings, get_rule_repository, get_state_store
from src.domain.rate_limiting.repositories import RateLimitRuleRepository
from src.domain.rate_limiting.state_store import CallerStateStore

from .schemas import HealthResponse

logger = get_logger(__name__)

router = APIRouter()


async def check_rules_health(repository: RateLimitRuleRepository) -> Dict[str, Any]:
    """Check that rules can be read. No rules means every call is denied."""
    try:
        rules = await repository.fetch_all()
    except Exception as e:
        logger.error("rules_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy" if rules else "empty", "count": len(rules)}


@router.get("", response_model=HealthResponse)
async def health_check(
    repository: RateLimitRuleRepository = Depends(get_rule_repository),
    state_store: CallerStateStore = Depends(get_state_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Health check reporting rule availability and the number of tracked callers.
    """
    rules_health = await check_rules_health(repository)
    overall_status = "ok" if rules_health["status"] == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        env=settings.APP_ENV,
        version=settings.VERSION,
        services={
            "rules": rules_health,
            "caller_state": {"status": "healthy", "tracked_callers": len(state_store)},
        },
        timestamp=datetime.now(timezone.utc),
    )
