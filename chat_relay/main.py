"""Main FastAPI application."""
import errno
import logging
import socket
import sys
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_relay.api import router as api_router
from chat_relay.domain.common.errors import ValidationError as DomainValidationError
from chat_relay.infra.realtime.ws_manager import WebSocketConnectionHub
from chat_relay.services.event_router import RelayEventRouter
from chat_relay.services.relay_state import RelayState
from chat_relay.settings import Settings, get_settings, settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

StateFactory = Callable[[Settings, WebSocketConnectionHub], RelayState]


def _default_state_factory(s: Settings, hub: WebSocketConnectionHub) -> RelayState:
    return RelayState.build(s, hub)


def create_app(state_factory: Optional[StateFactory] = None) -> FastAPI:
    """Build the application. `state_factory` lets callers inject store/push implementations."""
    factory = state_factory or _default_state_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        hub = WebSocketConnectionHub()
        state = factory(get_settings(), hub)
        app.state.hub = hub
        app.state.relay = state
        app.state.event_router = RelayEventRouter(state)
        logger.info(
            "Relay started (store=%s, push_enabled=%s)",
            settings.store_backend, settings.push_enabled,
        )

        yield

        # Shutdown: pending push/warm-load tasks are cancelled, store connections closed
        await state.aclose()
        logger.info("Relay stopped")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainValidationError)
    async def domain_validation_handler(request: Request, exc: DomainValidationError):
        """Return 422 for domain validation errors."""
        return JSONResponse(status_code=422, content={"detail": exc.message})

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": settings.app_version}

    @app.get("/ready")
    async def readiness(request: Request):
        """Readiness endpoint: run all checks and return 200 if ready, 503 otherwise."""
        from chat_relay.readiness import is_ready, run_all_checks_async
        checks = await run_all_checks_async(getattr(request.app.state, "relay", None))
        ready, summary = is_ready(checks)
        if ready:
            return {"ready": True, "checks": summary}
        return JSONResponse(status_code=503, content={"ready": False, "checks": summary})

    app.include_router(api_router)
    return app


app = create_app()


def wait_for_port(host: str, port: int, retries: int, delay: float) -> bool:
    """Return True once host:port can be bound. Retries only while the address is in use."""
    for attempt in range(1, retries + 2):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                probe.bind((host, port))
                return True
            except OSError as e:
                if e.errno != errno.EADDRINUSE:
                    raise
                logger.warning("Port %s:%s in use (attempt %d/%d)", host, port, attempt, retries + 1)
        if attempt <= retries:
            time.sleep(delay)
    return False


def run() -> None:
    """Console entry point: serve the relay with uvicorn."""
    import uvicorn

    s = get_settings()
    if not wait_for_port(s.host, s.port, s.bind_retries, s.bind_retry_delay_seconds):
        logger.error("Could not bind %s:%s after %d retries; exiting", s.host, s.port, s.bind_retries)
        sys.exit(1)
    uvicorn.run(app, host=s.host, port=s.port, log_level=str(s.log_level).lower())


if __name__ == "__main__":
    run()
