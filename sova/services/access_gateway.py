"""Access gateway: token, subscription and shared-secret checks."""

import logging
import secrets

from sova.errors import (
    AdminAccessDenied,
    InvalidSharedSecret,
    MissingToken,
    SubscriptionExpired,
    SubscriptionRequired,
)
from sova.models import SubscriptionCheck
from sova.storage import SessionManager, SubscriptionRegistry

logger = logging.getLogger(__name__)


def _secret_matches(candidate: str | None, expected: str) -> bool:
    if not candidate or not expected:
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


class AccessGateway:
    """Authorizes requests against sessions and subscriptions."""

    def __init__(
        self,
        sessions: SessionManager,
        subscriptions: SubscriptionRegistry,
        webhook_secret: str,
        admin_secret: str,
    ):
        self.sessions = sessions
        self.subscriptions = subscriptions
        self._webhook_secret = webhook_secret
        self._admin_secret = admin_secret

    async def authorize(self, token: str | None, touch: bool = True) -> int:
        """Resolve a bearer token to a user id.

        ``touch=False`` checks the session without counting it as activity.

        Raises:
            MissingToken: no token supplied
            InvalidToken, SessionNotFound: from the session manager
        """
        if not token:
            raise MissingToken()
        return await self.sessions.validate(token, touch=touch)

    async def authorize_with_subscription(self, token: str | None, touch: bool = True) -> int:
        """Resolve a token and require an active subscription.

        Raises:
            SubscriptionExpired: record expired by this very check
            SubscriptionRequired: no record, or already expired
        """
        user_id = await self.authorize(token, touch=touch)
        check = await self.subscriptions.check(user_id)
        if check == SubscriptionCheck.ACTIVE:
            return user_id
        if check == SubscriptionCheck.EXPIRED_NOW:
            raise SubscriptionExpired()
        raise SubscriptionRequired()

    def authorize_trusted_activation(self, shared_secret: str | None) -> None:
        """Check the payment webhook's pre-shared secret.

        Raises:
            InvalidSharedSecret: missing or wrong secret
        """
        if not _secret_matches(shared_secret, self._webhook_secret):
            logger.warning("Rejected trusted activation: bad shared secret")
            raise InvalidSharedSecret()

    def authorize_admin(self, shared_secret: str | None) -> None:
        """Check the admin pre-shared secret.

        Raises:
            AdminAccessDenied: missing or wrong secret
        """
        if not _secret_matches(shared_secret, self._admin_secret):
            logger.warning("Rejected admin request: bad shared secret")
            raise AdminAccessDenied()
