"""Runtime config push and reload for operators (config file stays master over env)."""
from fastapi import APIRouter, Body, status

from chat_relay.domain.common.errors import ValidationError
from chat_relay.settings import get_config_store

router = APIRouter()


@router.get("/config/overrides")
async def get_config_overrides():
    """Overrides pushed since start (or the last clear) and the config file they sit on."""
    store = get_config_store()
    return {
        "configFile": str(store.config_file) if store.config_file else None,
        "overrides": store.overrides,
    }


@router.post("/config", status_code=status.HTTP_200_OK)
async def update_config(body: dict = Body(..., embed=False)):
    """Push overrides. Values read per request (e.g. the diagnostics window) apply immediately;
    anything wired into the relay state at startup (cache sizes, timeouts) applies on restart.
    """
    if not get_config_store().update(body):
        raise ValidationError(f"Config overrides rejected: {', '.join(sorted(body))}")
    return {"ok": True, "message": "Config updated"}


@router.post("/config/reload", status_code=status.HTTP_200_OK)
async def reload_config():
    """Re-read the config file and reapply pushed overrides."""
    get_config_store().reload_from_file()
    return {"ok": True, "message": "Config reloaded from file"}


@router.post("/config/clear-overrides", status_code=status.HTTP_200_OK)
async def clear_config_overrides():
    """Drop pushed overrides; settings fall back to config file + env."""
    get_config_store().clear_overrides()
    return {"ok": True, "message": "Overrides cleared"}
