"""In-memory credential store.

Holds user identity and bcrypt password hashes. Hashing runs in a worker
thread with no lock held; uniqueness is re-checked under the lock before
the user is inserted.
"""

import asyncio
import itertools
import logging

from sova.errors import DuplicateUser, InvalidCredentials, NotFoundError
from sova.models import Clock, User, utcnow
from sova.security import generate_password, hash_password, verify_password

logger = logging.getLogger(__name__)


class CredentialStore:
    """Users keyed by id with an email index (exact, case-sensitive)."""

    def __init__(self, bcrypt_rounds: int = 10, clock: Clock = utcnow):
        self._bcrypt_rounds = bcrypt_rounds
        self._clock = clock
        self._users: dict[int, User] = {}
        self._by_email: dict[str, int] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        # Checked against when the email is unknown so both failure paths cost the same
        self._dummy_hash = hash_password(generate_password(), bcrypt_rounds)

    def __len__(self) -> int:
        return len(self._users)

    async def register(self, email: str, password: str) -> int:
        """Create a user and return its id.

        Raises:
            DuplicateUser: email already registered
        """
        if email in self._by_email:
            raise DuplicateUser()

        password_hash = await asyncio.to_thread(hash_password, password, self._bcrypt_rounds)

        async with self._lock:
            if email in self._by_email:
                raise DuplicateUser()
            user = self._insert(email, password_hash)

        logger.info(f"Registered user {user.id}")
        return user.id

    async def authenticate(self, email: str, password: str) -> int:
        """Return the user id for valid credentials.

        Raises:
            InvalidCredentials: unknown email or wrong password (same error)
        """
        user_id = self._by_email.get(email)
        user = self._users.get(user_id) if user_id is not None else None
        stored_hash = user.password_hash if user else self._dummy_hash

        matches = await asyncio.to_thread(verify_password, password, stored_hash)
        if user is None or not matches:
            raise InvalidCredentials()
        return user.id

    async def find_or_create(self, email: str) -> tuple[int, bool]:
        """Return (user id, is_new), creating the user with a random password."""
        user_id = self._by_email.get(email)
        if user_id is not None:
            return user_id, False

        password_hash = await asyncio.to_thread(
            hash_password, generate_password(), self._bcrypt_rounds
        )

        async with self._lock:
            # Another request may have created it while we were hashing
            user_id = self._by_email.get(email)
            if user_id is not None:
                return user_id, False
            user = self._insert(email, password_hash)

        logger.info(f"Auto-created user {user.id}")
        return user.id, True

    def get(self, user_id: int) -> User:
        """Get a user by id.

        Raises:
            NotFoundError: unknown id
        """
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def find_by_email(self, email: str) -> User | None:
        user_id = self._by_email.get(email)
        return self._users.get(user_id) if user_id is not None else None

    def exists(self, user_id: int) -> bool:
        return user_id in self._users

    def list_users(self) -> list[User]:
        """All users, oldest first."""
        return list(self._users.values())

    def search(self, needle: str) -> list[User]:
        """Users whose email contains ``needle`` (case-insensitive)."""
        needle = needle.lower()
        return [u for u in self._users.values() if needle in u.email.lower()]

    def _insert(self, email: str, password_hash: str) -> User:
        # Caller holds the lock
        user = User(
            id=next(self._ids),
            email=email,
            password_hash=password_hash,
            created_at=self._clock(),
        )
        self._users[user.id] = user
        self._by_email[email] = user.id
        return user
