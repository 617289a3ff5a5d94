"""API v1 router configuration.
"""

from fastapi import APIRouter

from .health import router as health_router
from .logs import router as logs_router
from .rules import router as rules_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(logs_router, prefix="/logs", tags=["logs"])
api_router.include_router(rules_router, prefix="/rules", tags=["rules"])
