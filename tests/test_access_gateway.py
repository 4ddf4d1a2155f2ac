"""Tests for the access gateway."""

import pytest

from sova.errors import (
    AdminAccessDenied,
    InvalidSharedSecret,
    InvalidToken,
    MissingToken,
    SessionNotFound,
    SubscriptionExpired,
    SubscriptionRequired,
)
from sova.security import TokenCodec
from sova.services import AccessGateway
from sova.storage import SessionManager, SubscriptionRegistry

SECRET = "test-jwt-secret-with-enough-length-123"


class TestAccessGateway:
    """Tests for AccessGateway."""

    @pytest.fixture
    def sessions(self, clock):
        return SessionManager(TokenCodec(SECRET), max_devices=2, clock=clock)

    @pytest.fixture
    def subscriptions(self, clock):
        return SubscriptionRegistry(clock=clock)

    @pytest.fixture
    def gateway(self, sessions, subscriptions):
        return AccessGateway(
            sessions, subscriptions, webhook_secret="hook-secret", admin_secret="admin-secret"
        )

    @pytest.mark.asyncio
    async def test_authorize(self, gateway, sessions):
        token = await sessions.login(7)

        assert await gateway.authorize(token) == 7

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_authorize_missing_token(self, gateway, token):
        with pytest.raises(MissingToken):
            await gateway.authorize(token)

    @pytest.mark.asyncio
    async def test_authorize_propagates_session_errors(self, gateway, sessions):
        with pytest.raises(InvalidToken):
            await gateway.authorize("bogus")

        token = await sessions.login(7)
        await sessions.logout(7, token)
        with pytest.raises(SessionNotFound):
            await gateway.authorize(token)

    @pytest.mark.asyncio
    async def test_subscription_required_without_record(self, gateway, sessions):
        token = await sessions.login(7)

        with pytest.raises(SubscriptionRequired):
            await gateway.authorize_with_subscription(token)

    @pytest.mark.asyncio
    async def test_subscription_active(self, gateway, sessions, subscriptions):
        token = await sessions.login(7)
        await subscriptions.activate(7, 1)

        assert await gateway.authorize_with_subscription(token) == 7

    @pytest.mark.asyncio
    async def test_subscription_check_without_touch(self, gateway, sessions, subscriptions, clock):
        token = await sessions.login(7)
        await subscriptions.activate(7, 1)
        logged_in_at = clock.now
        clock.advance(minutes=5)

        assert await gateway.authorize_with_subscription(token, touch=False) == 7

        listed = await sessions.list_sessions(7)
        assert listed[0].last_activity == logged_in_at

    @pytest.mark.asyncio
    async def test_subscription_expired_by_this_check(self, gateway, sessions, subscriptions, clock):
        await subscriptions.activate(7, 1)
        clock.advance(days=32)
        token = await sessions.login(7)

        with pytest.raises(SubscriptionExpired):
            await gateway.authorize_with_subscription(token)

        # Already flipped: later checks report a missing active subscription
        with pytest.raises(SubscriptionRequired):
            await gateway.authorize_with_subscription(token)

    @pytest.mark.asyncio
    async def test_subscription_deactivated(self, gateway, sessions, subscriptions):
        token = await sessions.login(7)
        await subscriptions.activate(7, 1)
        await subscriptions.deactivate(7)

        with pytest.raises(SubscriptionRequired):
            await gateway.authorize_with_subscription(token)

    @pytest.mark.asyncio
    async def test_token_checked_before_subscription(self, gateway, subscriptions):
        await subscriptions.activate(7, 1)

        with pytest.raises(MissingToken):
            await gateway.authorize_with_subscription(None)

    def test_trusted_activation_secret(self, gateway):
        gateway.authorize_trusted_activation("hook-secret")

        for bad in (None, "", "wrong", "admin-secret"):
            with pytest.raises(InvalidSharedSecret):
                gateway.authorize_trusted_activation(bad)

    def test_admin_secret(self, gateway):
        gateway.authorize_admin("admin-secret")

        for bad in (None, "", "hook-secret"):
            with pytest.raises(AdminAccessDenied):
                gateway.authorize_admin(bad)

    def test_empty_configured_secret_rejects_everything(self, sessions, subscriptions):
        gateway = AccessGateway(sessions, subscriptions, webhook_secret="", admin_secret="")

        with pytest.raises(InvalidSharedSecret):
            gateway.authorize_trusted_activation("")
        with pytest.raises(AdminAccessDenied):
            gateway.authorize_admin("")
