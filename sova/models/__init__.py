"""Data models."""

from sova.models.clock import Clock, utcnow
from sova.models.signal import IngressPolicy, Signal
from sova.models.user import User
from sova.models.subscription import (
    MAX_MONTHS,
    Subscription,
    SubscriptionCheck,
    SubscriptionStatus,
    SubscriptionSummary,
    add_months,
)
from sova.models.session import Session

__all__ = [
    "Clock",
    "utcnow",
    "IngressPolicy",
    "Signal",
    "User",
    "Subscription",
    "SubscriptionCheck",
    "SubscriptionStatus",
    "SubscriptionSummary",
    "add_months",
    "MAX_MONTHS",
    "Session",
]
