"""Readiness probes for /ready: settings, runtime packages, the token store and the push provider."""
import importlib
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

# name -> (passed, detail)
CheckResult = tuple[bool, str]
ChecksDict = dict[str, CheckResult]

# The push provider is optional: a relay without push still delivers to online users.
REQUIRED_CHECKS = ("config", "packages", "store")

RUNTIME_MODULES = ("uvicorn", "sqlalchemy", "redis", "firebase_admin", "yaml")


def check_config() -> CheckResult:
    try:
        from chat_relay.settings import get_settings
        s = get_settings()
    except Exception as e:
        return False, f"settings invalid: {e}"
    return True, "ok" if s.store_backend else "no store backend"


def check_packages() -> CheckResult:
    missing = []
    for name in RUNTIME_MODULES:
        try:
            importlib.import_module(name)
        except ImportError:
            missing.append(name)
    if missing:
        return False, f"missing: {', '.join(missing)}"
    return True, "ok"


async def check_store(store: Any) -> CheckResult:
    try:
        alive = await store.ping()
    except Exception as e:
        logger.warning("Store readiness ping raised: %s", e)
        return False, str(e)
    return (True, "ok") if alive else (False, "ping failed")


def check_push(provider: Any) -> CheckResult:
    if getattr(provider, "configured", True):
        return True, "ok"
    return True, "skipped (push disabled or no credentials)"


async def run_all_checks_async(state: Optional[Any] = None) -> ChecksDict:
    """All checks against the running relay state; store and push are skipped when there is none yet."""
    checks: ChecksDict = {"config": check_config(), "packages": check_packages()}
    if state is None:
        checks["store"] = (True, "skipped (relay not started)")
        checks["push"] = (True, "skipped (relay not started)")
        return checks
    checks["store"] = await check_store(state.store)
    checks["push"] = check_push(state.push_provider)
    return checks


def is_ready(checks: ChecksDict) -> tuple[bool, dict[str, str]]:
    """(ready, name -> detail). Ready when every required check that ran passed."""
    ready = all(checks[name][0] for name in REQUIRED_CHECKS if name in checks)
    return ready, {name: detail for name, (_passed, detail) in checks.items()}
