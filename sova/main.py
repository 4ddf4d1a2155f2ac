"""Main application entry point."""

import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

# Try to use uvloop for better performance (Unix only)
try:
    import uvloop  # noqa: F401
    _UVLOOP_ENABLED = True
except ImportError:
    _UVLOOP_ENABLED = False

from sova import __version__
from sova.api import (
    SignalStream,
    admin_router,
    register_exception_handlers,
    router,
    signal_stream_endpoint,
)
from sova.config import Settings, get_settings
from sova.models import Clock, utcnow
from sova.services import Services

logger = logging.getLogger(__name__)

SERVICE_NAME = "SOVA Signal Server"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    services: Services = app.state.services

    logger.info(f"Starting {SERVICE_NAME} v{__version__}...")
    logger.info(f"Event loop: {'uvloop' if _UVLOOP_ENABLED else 'asyncio'}")
    logger.info(
        f"Device limit {services.settings.max_devices}, "
        f"ledger capacity {services.ledger.capacity}"
    )

    services.sweeper.start()

    yield

    logger.info("Shutting down...")
    await services.sweeper.stop()
    logger.info("Shutdown complete")


def create_app(settings: Settings | None = None, clock: Clock = utcnow) -> FastAPI:
    """Build an application with its own in-memory state."""
    settings = settings or get_settings()
    services = Services.build(settings, clock=clock)
    stream = SignalStream(services.gateway)
    services.ledger.on_signal(stream.send_signal)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Trading signal relay with subscription-gated access",
        version=__version__,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.services = services
    app.state.stream = stream

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(router, prefix="/api")
    app.include_router(admin_router, prefix="/admin")
    app.websocket("/ws")(signal_stream_endpoint)

    @app.get("/")
    async def root():
        """Service summary."""
        ledger = services.ledger
        return {
            "message": f"{SERVICE_NAME} is running!",
            "version": __version__,
            "endpoints": {
                "register": "POST /api/register",
                "login": "POST /api/login",
                "receive_signal": "POST /api/receive_signal",
                "get_signals": "GET /api/get_signals",
                "stats": "GET /api/stats",
                "subscription_status": "GET /api/subscription_status",
                "stream": "WS /ws",
            },
            "stats": {
                "total_signals": len(ledger),
                "last_signal": ledger.latest(),
            },
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "sova.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        loop="uvloop" if _UVLOOP_ENABLED else "asyncio",
    )


if __name__ == "__main__":
    main()
