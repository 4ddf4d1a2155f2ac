"""In-memory subscription registry.

One current record per user. Activation replaces the prior record
wholesale (durations never stack). Expiry is lazy: any read that sees an
active record past ``expires_at`` flips it to expired before returning.
"""

import asyncio
import logging
from decimal import Decimal

from sova.errors import NotFoundError, ValidationError
from sova.models import (
    MAX_MONTHS,
    Clock,
    Subscription,
    SubscriptionCheck,
    SubscriptionStatus,
    SubscriptionSummary,
    add_months,
    utcnow,
)

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Subscription records keyed by user id."""

    def __init__(self, user_exists=None, clock: Clock = utcnow):
        """
        Args:
            user_exists: Optional predicate validating user ids on activation
            clock: Time source
        """
        self._user_exists = user_exists
        self._clock = clock
        self._subscriptions: dict[int, Subscription] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._subscriptions)

    async def activate(
        self,
        user_id: int,
        months: int,
        payment_ref: str | None = None,
        amount: Decimal | None = None,
        currency: str | None = None,
        channel: str | None = None,
    ) -> Subscription:
        """Grant ``months`` calendar months starting now, replacing any record.

        Raises:
            NotFoundError: unknown user id
            ValidationError: months outside 1..MAX_MONTHS
        """
        if not 1 <= months <= MAX_MONTHS:
            raise ValidationError(f"months must be between 1 and {MAX_MONTHS}")
        if self._user_exists is not None and not self._user_exists(user_id):
            raise NotFoundError("User not found")

        async with self._lock:
            now = self._clock()
            subscription = Subscription(
                user_id=user_id,
                status=SubscriptionStatus.ACTIVE,
                activated_at=now,
                expires_at=add_months(now, months),
                months=months,
                payment_ref=payment_ref,
                amount=amount,
                currency=currency,
                channel=channel,
            )
            self._subscriptions[user_id] = subscription

        logger.info(
            f"Activated subscription for user {user_id}: {months} month(s) "
            f"until {subscription.expires_at.isoformat()} via {channel}"
        )
        return subscription.model_copy()

    async def deactivate(self, user_id: int) -> bool:
        """Mark the record expired. Returns False when there is no record."""
        async with self._lock:
            subscription = self._subscriptions.get(user_id)
            if subscription is None:
                return False
            subscription.status = SubscriptionStatus.EXPIRED

        logger.info(f"Deactivated subscription for user {user_id}")
        return True

    async def delete(self, user_id: int) -> bool:
        """Remove the record. Returns False when there is no record."""
        async with self._lock:
            removed = self._subscriptions.pop(user_id, None)

        if removed is not None:
            logger.info(f"Deleted subscription for user {user_id}")
        return removed is not None

    async def get(self, user_id: int) -> Subscription | None:
        """Current record (lazy expiry applied), or None."""
        await self.check(user_id)
        subscription = self._subscriptions.get(user_id)
        return subscription.model_copy() if subscription else None

    async def status_of(self, user_id: int) -> SubscriptionSummary:
        """Status view with lazy expiry applied."""
        check = await self.check(user_id)
        subscription = self._subscriptions.get(user_id)
        if subscription is None:
            return SubscriptionSummary(has_active=False)

        return SubscriptionSummary(
            has_active=check == SubscriptionCheck.ACTIVE,
            status=subscription.status,
            activated_at=subscription.activated_at,
            expires_at=subscription.expires_at,
            months=subscription.months,
        )

    async def is_active_for(self, user_id: int) -> bool:
        return await self.check(user_id) == SubscriptionCheck.ACTIVE

    async def check(self, user_id: int) -> SubscriptionCheck:
        """Classify the user's subscription, flipping stale records to expired.

        Reads without the lock; only a stale record takes the lock, and it is
        re-checked there before the status is changed.
        """
        subscription = self._subscriptions.get(user_id)
        if subscription is None:
            return SubscriptionCheck.NONE
        if subscription.status == SubscriptionStatus.EXPIRED:
            return SubscriptionCheck.INACTIVE
        if not subscription.is_stale(self._clock()):
            return SubscriptionCheck.ACTIVE

        async with self._lock:
            # Re-read: it may have been replaced or changed meanwhile
            current = self._subscriptions.get(user_id)
            if current is None:
                return SubscriptionCheck.NONE
            if current.is_stale(self._clock()):
                current.status = SubscriptionStatus.EXPIRED
                logger.info(f"Subscription for user {user_id} expired at {current.expires_at.isoformat()}")
                return SubscriptionCheck.EXPIRED_NOW
            if current.status == SubscriptionStatus.EXPIRED:
                return SubscriptionCheck.INACTIVE
            return SubscriptionCheck.ACTIVE

    async def counts(self) -> dict[str, int]:
        """Number of active/expired records, after lazy expiry."""
        for user_id in list(self._subscriptions):
            await self.check(user_id)
        active = sum(
            1 for s in self._subscriptions.values() if s.status == SubscriptionStatus.ACTIVE
        )
        return {"active": active, "expired": len(self._subscriptions) - active}
