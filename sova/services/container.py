"""Wires the repositories and services for one application instance."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from sova.config import Settings
from sova.errors import ValidationError
from sova.models import MAX_MONTHS, Clock, IngressPolicy, Subscription, utcnow
from sova.security import TokenCodec
from sova.services.access_gateway import AccessGateway
from sova.services.session_sweeper import SessionSweeper
from sova.storage import CredentialStore, SessionManager, SignalLedger, SubscriptionRegistry

logger = logging.getLogger(__name__)

ADVISOR_SOURCE = "MT4 Advisor"


@dataclass
class ActivationResult:
    """Outcome of activating a subscription by email."""

    user_id: int
    is_new_user: bool
    subscription: Subscription


@dataclass
class Services:
    """Owned state and services, injected into request handlers."""

    settings: Settings
    users: CredentialStore
    ledger: SignalLedger
    subscriptions: SubscriptionRegistry
    sessions: SessionManager
    gateway: AccessGateway
    sweeper: SessionSweeper
    post_ingress: IngressPolicy
    get_ingress: IngressPolicy

    @classmethod
    def build(cls, settings: Settings, clock: Clock = utcnow) -> "Services":
        users = CredentialStore(bcrypt_rounds=settings.bcrypt_rounds, clock=clock)
        ledger = SignalLedger(capacity=settings.ledger_capacity, clock=clock)
        subscriptions = SubscriptionRegistry(user_exists=users.exists, clock=clock)
        codec = TokenCodec(
            settings.jwt_secret,
            ttl=timedelta(hours=settings.token_ttl_hours),
            algorithm=settings.jwt_algorithm,
            clock=clock,
        )
        sessions = SessionManager(codec, max_devices=settings.max_devices, clock=clock)
        gateway = AccessGateway(
            sessions,
            subscriptions,
            webhook_secret=settings.webhook_secret,
            admin_secret=settings.admin_secret,
        )
        sweeper = SessionSweeper(
            sessions,
            idle_threshold=timedelta(minutes=settings.session_idle_minutes),
            interval=settings.session_sweep_interval_seconds,
        )
        return cls(
            settings=settings,
            users=users,
            ledger=ledger,
            subscriptions=subscriptions,
            sessions=sessions,
            gateway=gateway,
            sweeper=sweeper,
            post_ingress=IngressPolicy(
                source=ADVISOR_SOURCE, normalize=settings.normalize_post_signals
            ),
            get_ingress=IngressPolicy(
                source=f"{ADVISOR_SOURCE} (GET)", normalize=settings.normalize_get_signals
            ),
        )

    async def activate_by_email(
        self,
        email: str,
        months: int | None = None,
        payment_ref: str | None = None,
        amount: Decimal | None = None,
        currency: str | None = None,
        channel: str | None = None,
    ) -> ActivationResult:
        """Activate a subscription for ``email``, creating the user if absent.

        Months are checked before any user is created.
        """
        months = months or self.settings.default_subscription_months
        if not 1 <= months <= MAX_MONTHS:
            raise ValidationError(f"months must be between 1 and {MAX_MONTHS}")
        user_id, is_new = await self.users.find_or_create(email)
        subscription = await self.subscriptions.activate(
            user_id,
            months,
            payment_ref=payment_ref,
            amount=amount,
            currency=currency,
            channel=channel,
        )
        return ActivationResult(user_id=user_id, is_new_user=is_new, subscription=subscription)
