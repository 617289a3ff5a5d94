"""Rate limiting rule administration endpoints.

Listing rules is an ordinary guarded call. Creating and deleting rules is
logged but not rate limited, so an operator can always restore rules, even
after deleting all of them left every guarded call denied.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from src.core.dependencies.rate_limiting import get_rule_repository
from src.core.rate_limit import api_logger
from src.domain.rate_limiting.repositories import RateLimitRuleRepository

from .schemas import RateLimitRuleCreate, RateLimitRuleResponse, RulesDeletedResponse

router = APIRouter()

log_admin_call = Depends(api_logger("Rules", rate_limited=False))


@router.get("", response_model=List[RateLimitRuleResponse], dependencies=[Depends(api_logger("Rules"))])
async def list_rules(repository: RateLimitRuleRepository = Depends(get_rule_repository)):
    """Return every configured rule in evaluation order."""
    rules = await repository.fetch_all()
    return [RateLimitRuleResponse.from_entity(rule) for rule in rules]


@router.post(
    "",
    response_model=RateLimitRuleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[log_admin_call],
)
async def create_rule(
    payload: RateLimitRuleCreate,
    repository: RateLimitRuleRepository = Depends(get_rule_repository),
):
    """Add a rule. It applies from the next request onwards."""
    rule = await repository.create(payload.to_entity())
    return RateLimitRuleResponse.from_entity(rule)


@router.delete("", response_model=RulesDeletedResponse, dependencies=[log_admin_call])
async def delete_rules(repository: RateLimitRuleRepository = Depends(get_rule_repository)):
    """Remove all rules.

    With no rules left every guarded call is denied until a rule is added
    through ``POST`` or the service restarts and seeds the defaults.
    """
    deleted = await repository.delete_all()
    return RulesDeletedResponse(deleted=deleted)
