"""Request and response models.

JSON keys are camelCase on the wire; attribute names stay snake_case.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sova.models import MAX_MONTHS, Signal, Subscription, SubscriptionStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests

class CredentialsRequest(BaseModel):
    """Register/login body."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AutoActivateRequest(CamelModel):
    """Payment webhook body."""

    email: str = Field(min_length=1)
    order_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    payment_system: Optional[str] = None
    months: Optional[int] = Field(None, ge=1, le=MAX_MONTHS)


class AdminSubscriptionRequest(CamelModel):
    """Admin subscription change."""

    email: str = Field(min_length=1)
    action: Literal["activate", "deactivate", "delete"]
    months: Optional[int] = Field(None, ge=1, le=MAX_MONTHS)


# Responses

class AuthResponse(CamelModel):
    token: str
    user_id: int


class MessageResponse(CamelModel):
    message: str


class LogoutOthersResponse(CamelModel):
    message: str
    removed: int


class SessionResponse(CamelModel):
    client_addr: Optional[str] = None
    client_agent: Optional[str] = None
    created_at: datetime
    last_activity: datetime
    current: bool = False


class SessionsResponse(CamelModel):
    sessions: list[SessionResponse]


class SignalReceivedResponse(CamelModel):
    message: str
    signal: Signal


class SignalsResponse(CamelModel):
    total: int
    signals: list[Signal]


class SubscriptionResponse(CamelModel):
    status: SubscriptionStatus
    activated_at: datetime
    expires_at: datetime
    months: int
    payment_ref: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    channel: Optional[str] = None

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            status=subscription.status,
            activated_at=subscription.activated_at,
            expires_at=subscription.expires_at,
            months=subscription.months,
            payment_ref=subscription.payment_ref,
            amount=subscription.amount,
            currency=subscription.currency,
            channel=subscription.channel,
        )


class SubscriptionStatusResponse(CamelModel):
    email: Optional[str] = None
    has_active: bool
    status: Optional[SubscriptionStatus] = None
    activated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    months: Optional[int] = None


class EmailSubscriptionResponse(CamelModel):
    email: str
    exists: bool
    has_active: bool
    status: Optional[SubscriptionStatus] = None
    expires_at: Optional[datetime] = None


class ActivationResponse(CamelModel):
    success: bool
    message: str
    user_id: int
    is_new_user: bool
    subscription: SubscriptionResponse


class AdminUserResponse(CamelModel):
    id: int
    email: str
    created_at: datetime
    sessions: int
    subscription: Optional[SubscriptionResponse] = None


class AdminUsersResponse(CamelModel):
    total: int
    users: list[AdminUserResponse]


class AdminStatsResponse(CamelModel):
    users: int
    active_subscriptions: int
    expired_subscriptions: int
    sessions: int
    signals: int


class AdminSubscriptionResponse(CamelModel):
    success: bool
    message: str
    user_id: int
    subscription: Optional[SubscriptionResponse] = None
