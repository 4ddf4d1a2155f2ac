"""Business services."""

from sova.services.access_gateway import AccessGateway
from sova.services.session_sweeper import SessionSweeper
from sova.services.container import ADVISOR_SOURCE, ActivationResult, Services

__all__ = [
    "AccessGateway",
    "SessionSweeper",
    "Services",
    "ActivationResult",
    "ADVISOR_SOURCE",
]
