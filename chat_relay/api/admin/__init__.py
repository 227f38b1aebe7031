"""Admin API routes."""
from fastapi import APIRouter

from chat_relay.api.admin import routes_config, routes_diagnostics

router = APIRouter()

router.include_router(routes_diagnostics.router)
router.include_router(routes_config.router, tags=["config"])
