"""Subscription models and calendar-month arithmetic."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict

from sova.errors import ValidationError

# Longest grant accepted in one activation (10 years)
MAX_MONTHS = 120


class SubscriptionStatus(str, Enum):
    """Stored subscription status."""

    ACTIVE = "active"
    EXPIRED = "expired"


class SubscriptionCheck(str, Enum):
    """Outcome of an access check against the registry."""

    ACTIVE = "active"
    NONE = "none"  # No record for the user
    INACTIVE = "inactive"  # Record already marked expired
    EXPIRED_NOW = "expired_now"  # Lazily expired by this very check


def add_months(moment: datetime, months: int) -> datetime:
    """Advance by calendar months, clamping the day to the target month.

    Jan 31 + 1 month -> Feb 28/29, Mar 31 + 1 month -> Apr 30.

    Raises:
        ValidationError: result falls outside the supported date range
    """
    try:
        return moment + relativedelta(months=months)
    except (ValueError, OverflowError):
        raise ValidationError(f"Cannot add {months} month(s) to {moment.isoformat()}")


class Subscription(BaseModel):
    """Current subscription record of one user."""

    model_config = ConfigDict(frozen=False)

    user_id: int
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    activated_at: datetime
    expires_at: datetime
    months: int
    payment_ref: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    channel: str | None = None

    def is_stale(self, now: datetime) -> bool:
        """True when still marked active but past its expiry."""
        return self.status == SubscriptionStatus.ACTIVE and now > self.expires_at


class SubscriptionSummary(BaseModel):
    """Read view returned by ``statusOf``."""

    has_active: bool
    status: SubscriptionStatus | None = None
    activated_at: datetime | None = None
    expires_at: datetime | None = None
    months: int | None = None
