"""Tests for the session manager and token handling."""

from datetime import timedelta

import pytest

from sova.errors import DeviceLimitExceeded, InvalidToken, SessionNotFound
from sova.security import TokenCodec
from conftest import FakeClock
from sova.storage import SessionManager

SECRET = "test-jwt-secret-with-enough-length-123"


class TestTokenCodec:
    """Tests for TokenCodec."""

    def test_issue_and_decode(self):
        codec = TokenCodec(SECRET)
        token = codec.issue(42)

        assert codec.decode(token) == 42

    def test_tokens_are_distinct(self):
        codec = TokenCodec(SECRET)

        assert codec.issue(1) != codec.issue(1)

    def test_wrong_secret(self):
        token = TokenCodec(SECRET).issue(1)

        with pytest.raises(InvalidToken):
            TokenCodec("another-secret-with-enough-length-456").decode(token)

    def test_expired(self):
        codec = TokenCodec(SECRET, ttl=timedelta(seconds=-10))
        token = codec.issue(1)

        with pytest.raises(InvalidToken):
            codec.decode(token)

    def test_expiry_follows_clock(self):
        clock = FakeClock()
        codec = TokenCodec(SECRET, ttl=timedelta(hours=1), clock=clock)
        token = codec.issue(1)

        clock.advance(minutes=59)
        assert codec.decode(token) == 1

        clock.advance(minutes=1)
        with pytest.raises(InvalidToken):
            codec.decode(token)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed(self, token):
        with pytest.raises(InvalidToken):
            TokenCodec(SECRET).decode(token)


class TestSessionManager:
    """Tests for SessionManager."""

    @pytest.fixture
    def manager(self, clock):
        return SessionManager(TokenCodec(SECRET), max_devices=2, clock=clock)

    @pytest.mark.asyncio
    async def test_login_then_validate(self, manager):
        token = await manager.login(1, "10.0.0.1", "pytest")

        assert await manager.validate(token) == 1

    @pytest.mark.asyncio
    async def test_device_cap(self, manager):
        """Test the third login is rejected until a session is removed."""
        first = await manager.login(1, "10.0.0.1", "phone")
        await manager.login(1, "10.0.0.2", "laptop")

        with pytest.raises(DeviceLimitExceeded):
            await manager.login(1, "10.0.0.3", "tablet")
        assert manager.count_for(1) == 2

        await manager.logout(1, first)
        third = await manager.login(1, "10.0.0.3", "tablet")
        assert await manager.validate(third) == 1

    @pytest.mark.asyncio
    async def test_device_cap_is_per_user(self, manager):
        await manager.login(1)
        await manager.login(1)

        await manager.login(2)
        assert manager.count_for(2) == 1

    @pytest.mark.asyncio
    async def test_configurable_cap(self, clock):
        manager = SessionManager(TokenCodec(SECRET), max_devices=1, clock=clock)
        await manager.login(1)

        with pytest.raises(DeviceLimitExceeded):
            await manager.login(1)

    @pytest.mark.asyncio
    async def test_logout_revokes_valid_token(self, manager):
        """Test a revoked token still verifies cryptographically but is rejected."""
        token = await manager.login(1)
        assert await manager.validate(token) == 1

        assert await manager.logout(1, token) is True

        assert manager.codec.decode(token) == 1
        with pytest.raises(SessionNotFound):
            await manager.validate(token)

    @pytest.mark.asyncio
    async def test_logout_only_removes_matching_session(self, manager):
        first = await manager.login(1)
        second = await manager.login(1)

        await manager.logout(1, first)

        assert await manager.validate(second) == 1
        assert manager.count_for(1) == 1

    @pytest.mark.asyncio
    async def test_logout_other_users_token(self, manager):
        token = await manager.login(1)

        assert await manager.logout(2, token) is False
        assert await manager.validate(token) == 1

    @pytest.mark.asyncio
    async def test_validate_invalid_token(self, manager):
        with pytest.raises(InvalidToken):
            await manager.validate("not-a-token")

    @pytest.mark.asyncio
    async def test_validate_token_without_session(self, manager):
        """Test a well-signed token that was never logged in is rejected."""
        token = manager.codec.issue(1)

        with pytest.raises(SessionNotFound):
            await manager.validate(token)

    @pytest.mark.asyncio
    async def test_validate_refreshes_activity(self, manager, clock):
        token = await manager.login(1)
        clock.advance(minutes=10)

        await manager.validate(token)

        sessions = await manager.list_sessions(1)
        assert sessions[0].last_activity == clock.now
        assert sessions[0].created_at == clock.now - timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_validate_without_touch(self, manager, clock):
        token = await manager.login(1)
        logged_in_at = clock.now
        clock.advance(minutes=10)

        assert await manager.validate(token, touch=False) == 1

        sessions = await manager.list_sessions(1)
        assert sessions[0].last_activity == logged_in_at

    @pytest.mark.asyncio
    async def test_logout_others(self, manager):
        first = await manager.login(1, "10.0.0.1", "phone")
        second = await manager.login(1, "10.0.0.2", "laptop")
        other_user = await manager.login(2)

        removed = await manager.logout_others(1, second)

        assert removed == 1
        with pytest.raises(SessionNotFound):
            await manager.validate(first)
        assert await manager.validate(second) == 1
        assert await manager.validate(other_user) == 2

    @pytest.mark.asyncio
    async def test_list_sessions(self, manager):
        await manager.login(1, "10.0.0.1", "phone")
        await manager.login(1, "10.0.0.2", "laptop")

        sessions = await manager.list_sessions(1)

        assert [(s.client_addr, s.client_agent) for s in sessions] == [
            ("10.0.0.1", "phone"),
            ("10.0.0.2", "laptop"),
        ]
        assert await manager.list_sessions(3) == []

    @pytest.mark.asyncio
    async def test_sweep_idle(self, manager, clock):
        idle = await manager.login(1)
        active = await manager.login(2)

        clock.advance(minutes=20)
        await manager.validate(active)
        clock.advance(minutes=11)  # idle: 31 min, active: 11 min

        removed = await manager.sweep_idle(timedelta(minutes=30))

        assert removed == 1
        with pytest.raises(SessionNotFound):
            await manager.validate(idle)
        assert await manager.validate(active) == 2
        assert manager.count_for(1) == 0

    @pytest.mark.asyncio
    async def test_sweep_keeps_session_at_threshold(self, manager, clock):
        token = await manager.login(1)
        clock.advance(minutes=30)

        assert await manager.sweep_idle(timedelta(minutes=30)) == 0
        assert await manager.validate(token) == 1

    @pytest.mark.asyncio
    async def test_sweep_frees_device_slots(self, manager, clock):
        await manager.login(1)
        await manager.login(1)
        clock.advance(hours=1)

        await manager.sweep_idle(timedelta(minutes=30))

        assert await manager.login(1)
