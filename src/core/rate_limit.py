"""API logger dependency: per-controller call logging and rate limiting.

Each route attaches ``api_logger("<Controller>")`` as a dependency. Before the
endpoint runs it asks the decision service whether the caller may proceed and
raises ``RateLimitExceededError`` when denied. Once the endpoint finishes, the
call is timed and an ``ApiLogEntry`` is handed to the audit service.

Denied calls are audited as well (outcome "denied" with the reason) while
``RATE_LIMIT_AUDIT_DENIED`` is enabled, so rejected traffic stays visible in
the logs. Calls whose endpoint raises are audited with outcome "error".

Rule administration routes use ``api_logger(..., rate_limited=False)``: they
are logged but never denied, so rules can be restored after all of them were
deleted.
"""

import time
from datetime import datetime
from typing import AsyncGenerator, Callable

from fastapi import Depends, Request
from structlog import get_logger

from src.adapters.api.context import RequestContext, extract_request_context
from src.core.config.settings import Settings
from src.core.dependencies.rate_limiting import get_app_settings, get_audit_service, get_decision_service
from src.core.exceptions import RateLimitExceededError
from src.domain.rate_limiting.entities import ApiLogEntry
from src.domain.rate_limiting.services import RateLimitDecisionService
from src.domain.rate_limiting.value_objects import utc_now
from src.infrastructure.services.audit_service import AuditService

logger = get_logger(__name__)


def _build_entry(
    context: RequestContext,
    controller: str,
    start_time: datetime,
    started: float,
    outcome: str = "allowed",
    message: str = "",
) -> ApiLogEntry:
    return ApiLogEntry(
        http_method=context.http_method,
        path=context.path,
        controller=controller,
        user_id=context.identity,
        ip_address=context.ip_address,
        start_time=start_time,
        stop_time=utc_now(),
        duration_ms=round((time.perf_counter() - started) * 1000, 3),
        outcome=outcome,
        message=message,
    )


def api_logger(
    controller: str, rate_limited: bool = True
) -> Callable[..., AsyncGenerator[RequestContext, None]]:  # noqa: D401
    """Return a FastAPI *dependency* that logs and rate limits calls to ``controller``.

    Args:
        controller: Name recorded in every log entry for routes using the dependency.
        rate_limited: When False the call is only logged, never denied.
    """

    async def _dependency(
        request: Request,
        decision_service: RateLimitDecisionService = Depends(get_decision_service),
        audit_service: AuditService = Depends(get_audit_service),
        settings: Settings = Depends(get_app_settings),
    ) -> AsyncGenerator[RequestContext, None]:
        context = extract_request_context(request)
        start_time = utc_now()
        started = time.perf_counter()

        if rate_limited:
            decision = await decision_service.check(context.identity, context.ip_address)
            if decision.is_denied:
                logger.warning(
                    "api_call_denied",
                    controller=controller,
                    user_id=context.identity,
                    client_ip=context.ip_address,
                    path=context.path,
                    reason=decision.message,
                )
                if settings.RATE_LIMIT_AUDIT_DENIED:
                    await audit_service.record(
                        _build_entry(context, controller, start_time, started, "denied", decision.message)
                    )
                raise RateLimitExceededError(
                    decision.message, retry_after=decision.retry_after_seconds(decision_service.clock())
                )

        try:
            yield context
        except Exception as e:
            await audit_service.record(
                _build_entry(context, controller, start_time, started, "error", str(e)[:512])
            )
            raise
        await audit_service.record(_build_entry(context, controller, start_time, started))

    return _dependency
