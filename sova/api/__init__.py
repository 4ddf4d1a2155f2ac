"""API endpoints."""

from sova.api.routes import router
from sova.api.admin import router as admin_router
from sova.api.websocket import SignalStream, signal_stream_endpoint
from sova.api.errors import register_exception_handlers

__all__ = [
    "router",
    "admin_router",
    "SignalStream",
    "signal_stream_endpoint",
    "register_exception_handlers",
]
