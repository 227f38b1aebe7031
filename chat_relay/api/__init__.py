"""API routers."""
from fastapi import APIRouter

from chat_relay.api.admin import router as admin_router
from chat_relay.api.realtime import router as realtime_router

router = APIRouter()

router.include_router(realtime_router, tags=["realtime"])
router.include_router(admin_router, tags=["admin"])
