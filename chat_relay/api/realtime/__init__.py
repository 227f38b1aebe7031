"""Realtime API routes."""
from fastapi import APIRouter

from chat_relay.api.realtime import routes_ws

router = APIRouter()

router.include_router(routes_ws.router)
