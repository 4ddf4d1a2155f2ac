"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from sova.config import Settings


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Clock starting at the current time."""
    return FakeClock()


@pytest.fixture
def settings():
    """Settings with fast password hashing and known secrets."""
    return Settings(
        _env_file=None,
        jwt_secret="test-jwt-secret-with-enough-length-123",
        webhook_secret="test-webhook-secret",
        admin_secret="test-admin-secret",
        bcrypt_rounds=4,
    )
