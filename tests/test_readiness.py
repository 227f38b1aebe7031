"""Readiness checks: required checks gate readiness, push is optional."""
from unittest.mock import AsyncMock

from chat_relay.readiness import check_push, check_store, is_ready, run_all_checks_async


def test_is_ready_when_required_checks_pass():
    checks = {
        "config": (True, "ok"),
        "packages": (True, "ok"),
        "store": (True, "ok"),
        "push": (True, "skipped (push disabled or no credentials)"),
    }
    ready, summary = is_ready(checks)
    assert ready is True
    assert summary["push"].startswith("skipped")


def test_not_ready_when_store_fails():
    checks = {"config": (True, "ok"), "packages": (True, "ok"), "store": (False, "ping failed")}
    ready, summary = is_ready(checks)
    assert ready is False
    assert summary["store"] == "ping failed"


async def test_check_store_reports_exceptions():
    store = AsyncMock()
    store.ping.side_effect = OSError("connection refused")
    assert await check_store(store) == (False, "connection refused")


def test_check_push_never_fails():
    class Disabled:
        configured = False

    assert check_push(Disabled()) == (True, "skipped (push disabled or no credentials)")


async def test_run_all_checks_with_state(state):
    checks = await run_all_checks_async(state)

    assert checks["config"] == (True, "ok")
    assert checks["packages"] == (True, "ok")
    assert checks["store"] == (True, "ok")
    assert is_ready(checks)[0] is True
