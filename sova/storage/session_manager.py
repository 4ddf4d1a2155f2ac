"""Session manager: device-capped, individually revocable login sessions.

Each successful login issues a signed token and records one session for
it. A token is accepted only while both its signature/expiry check and
its live session record hold, so logout revokes a token that would
otherwise still verify.
"""

import asyncio
import logging
from datetime import timedelta

from sova.errors import DeviceLimitExceeded, SessionNotFound
from sova.models import Clock, Session, utcnow
from sova.security import TokenCodec

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEVICES = 2


class SessionManager:
    """Live sessions indexed by token and by user."""

    def __init__(
        self,
        codec: TokenCodec,
        max_devices: int = DEFAULT_MAX_DEVICES,
        clock: Clock = utcnow,
    ):
        self.codec = codec
        self.max_devices = max_devices
        self._clock = clock
        self._sessions: dict[str, Session] = {}  # token -> session
        self._by_user: dict[int, list[str]] = {}  # user id -> tokens, oldest first
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    async def login(
        self,
        user_id: int,
        client_addr: str | None = None,
        client_agent: str | None = None,
    ) -> str:
        """Open a session and return its bearer token.

        Raises:
            DeviceLimitExceeded: user already holds ``max_devices`` sessions
        """
        async with self._lock:
            tokens = self._by_user.get(user_id, [])
            if len(tokens) >= self.max_devices:
                logger.info(
                    f"Login rejected for user {user_id}: {len(tokens)}/{self.max_devices} devices"
                )
                raise DeviceLimitExceeded(
                    f"Device limit exceeded: maximum {self.max_devices} active sessions"
                )

            token = self.codec.issue(user_id)
            now = self._clock()
            self._sessions[token] = Session(
                user_id=user_id,
                token=token,
                client_addr=client_addr,
                client_agent=client_agent,
                created_at=now,
                last_activity=now,
            )
            self._by_user.setdefault(user_id, []).append(token)
            count = len(self._by_user[user_id])

        logger.info(f"User {user_id} logged in from {client_addr} ({count}/{self.max_devices})")
        return token

    async def validate(self, token: str, touch: bool = True) -> int:
        """Return the token's user id, refreshing its session activity if ``touch``.

        Raises:
            InvalidToken: bad signature or expired
            SessionNotFound: no live session for this token
        """
        user_id = self.codec.decode(token)

        async with self._lock:
            session = self._sessions.get(token)
            if session is None or session.user_id != user_id:
                raise SessionNotFound()
            if touch:
                session.last_activity = self._clock()

        return user_id

    async def logout(self, user_id: int, token: str) -> bool:
        """Remove the session bound to ``token``. Returns False if none."""
        async with self._lock:
            session = self._sessions.get(token)
            if session is None or session.user_id != user_id:
                return False
            self._remove(token)

        logger.info(f"User {user_id} logged out")
        return True

    async def logout_others(self, user_id: int, current_token: str) -> int:
        """Remove every session of the user except ``current_token``.

        Returns:
            Number of sessions removed
        """
        async with self._lock:
            others = [t for t in self._by_user.get(user_id, []) if t != current_token]
            for token in others:
                self._remove(token)

        if others:
            logger.info(f"User {user_id} logged out {len(others)} other session(s)")
        return len(others)

    async def list_sessions(self, user_id: int) -> list[Session]:
        """Sessions of the user, oldest first (copies)."""
        async with self._lock:
            return [
                self._sessions[t].model_copy() for t in self._by_user.get(user_id, [])
            ]

    def count_for(self, user_id: int) -> int:
        return len(self._by_user.get(user_id, []))

    async def sweep_idle(self, idle_threshold: timedelta) -> int:
        """Remove sessions idle for longer than ``idle_threshold``.

        Returns:
            Number of sessions removed
        """
        async with self._lock:
            cutoff = self._clock() - idle_threshold
            stale = [t for t, s in self._sessions.items() if s.last_activity < cutoff]
            for token in stale:
                self._remove(token)

        if stale:
            logger.info(f"Swept {len(stale)} idle session(s)")
        return len(stale)

    def _remove(self, token: str) -> None:
        # Caller holds the lock
        session = self._sessions.pop(token, None)
        if session is None:
            return
        tokens = self._by_user.get(session.user_id)
        if tokens is not None:
            tokens.remove(token)
            if not tokens:
                del self._by_user[session.user_id]
