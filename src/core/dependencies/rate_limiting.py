"""FastAPI dependencies exposing the services wired onto ``app.state``.

The application factory stores one instance of each collaborator on the
application state; these accessors let routes and the API logger receive
them through ``Depends`` and let tests swap them via ``dependency_overrides``.
"""

from fastapi import Request

from src.core.config.settings import Settings
from src.domain.rate_limiting.repositories import ApiLogRepository, RateLimitRuleRepository
from src.domain.rate_limiting.services import RateLimitDecisionService
from src.domain.rate_limiting.state_store import CallerStateStore
from src.infrastructure.services.audit_service import AuditService

__all__ = [
    "get_app_settings",
    "get_decision_service",
    "get_audit_service",
    "get_rule_repository",
    "get_log_repository",
    "get_state_store",
]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_decision_service(request: Request) -> RateLimitDecisionService:
    return request.app.state.decision_service


def get_audit_service(request: Request) -> AuditService:
    return request.app.state.audit_service


def get_rule_repository(request: Request) -> RateLimitRuleRepository:
    return request.app.state.rule_repository


def get_log_repository(request: Request) -> ApiLogRepository:
    return request.app.state.log_repository


def get_state_store(request: Request) -> CallerStateStore:
    return request.app.state.state_store
