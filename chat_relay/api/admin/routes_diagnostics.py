"""Diagnostic snapshot for operators."""
from fastapi import APIRouter, Depends, Query

from chat_relay.api.deps import get_relay_state
from chat_relay.services.relay_state import RelayState
from chat_relay.settings import settings

router = APIRouter()


@router.get("/diagnostics")
async def diagnostics(
    recent: int | None = Query(None, ge=0, le=500),
    state: RelayState = Depends(get_relay_state),
):
    """Current connections, online users and the most recent cached messages (newest first)."""
    limit = settings.diagnostics_recent_messages if recent is None else recent
    return state.snapshot(recent=limit)
