"""Password hashing and session token signing."""

import secrets
from datetime import timedelta

import bcrypt
import jwt

from sova.errors import InvalidToken
from sova.models import Clock, utcnow


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt.

    CPU-bound: callers on the event loop should run it via
    ``asyncio.to_thread``.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_password(length: int = 24) -> str:
    """Random throwaway password for accounts created by trusted activation."""
    return secrets.token_urlsafe(length)


class TokenCodec:
    """Issue and verify signed, time-boxed bearer tokens (JWT).

    The user id is the only identity claim (``sub``). ``jti`` makes every
    issued token distinct so sessions stay independently revocable. Both
    ``iat`` and the expiry check follow the injected clock.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(hours=24),
        algorithm: str = "HS256",
        clock: Clock = utcnow,
    ):
        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: int) -> str:
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> int:
        """Verify signature and expiry and return the user id.

        Raises:
            InvalidToken: bad signature, expired, or malformed claims
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"], "verify_exp": False, "verify_iat": False},
            )
            expires = int(payload["exp"])
            user_id = int(payload["sub"])
        except (jwt.InvalidTokenError, ValueError, TypeError):
            raise InvalidToken()
        if self._clock().timestamp() >= expires:
            raise InvalidToken("Token expired")
        return user_id
