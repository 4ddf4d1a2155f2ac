"""Tests for the credential store."""

import asyncio

import pytest

from sova.errors import DuplicateUser, InvalidCredentials, NotFoundError
from sova.security import verify_password
from sova.storage import CredentialStore


class TestCredentialStore:
    """Tests for CredentialStore."""

    @pytest.fixture
    def store(self, clock):
        return CredentialStore(bcrypt_rounds=4, clock=clock)

    @pytest.mark.asyncio
    async def test_register_and_authenticate(self, store):
        user_id = await store.register("a@x.com", "pw")

        assert await store.authenticate("a@x.com", "pw") == user_id

    @pytest.mark.asyncio
    async def test_password_is_hashed(self, store):
        user_id = await store.register("a@x.com", "secret-pw")
        user = store.get(user_id)

        assert user.password_hash != "secret-pw"
        assert user.password_hash.startswith("$2")
        assert verify_password("secret-pw", user.password_hash)

    @pytest.mark.asyncio
    async def test_user_ids_unique_and_increasing(self, store):
        first = await store.register("a@x.com", "pw")
        second = await store.register("b@x.com", "pw")

        assert second > first

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, store):
        await store.register("a@x.com", "pw")

        with pytest.raises(DuplicateUser):
            await store.register("a@x.com", "other")
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_email_is_case_sensitive(self, store):
        await store.register("a@x.com", "pw")
        await store.register("A@x.com", "pw")

        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_registration(self, store):
        """Test only one of two racing registrations succeeds."""
        results = await asyncio.gather(
            store.register("a@x.com", "pw1"),
            store.register("a@x.com", "pw2"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, int) for r in results) == 1
        assert sum(isinstance(r, DuplicateUser) for r in results) == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_identical(self, store):
        await store.register("a@x.com", "pw")

        with pytest.raises(InvalidCredentials) as wrong_pw:
            await store.authenticate("a@x.com", "nope")
        with pytest.raises(InvalidCredentials) as unknown:
            await store.authenticate("ghost@x.com", "pw")

        assert type(wrong_pw.value) is type(unknown.value)
        assert wrong_pw.value.message == unknown.value.message
        assert wrong_pw.value.status_code == unknown.value.status_code

    @pytest.mark.asyncio
    async def test_find_or_create_new(self, store):
        user_id, is_new = await store.find_or_create("new@x.com")

        assert is_new is True
        assert store.get(user_id).email == "new@x.com"
        # Random password: empty password must not work
        with pytest.raises(InvalidCredentials):
            await store.authenticate("new@x.com", "")

    @pytest.mark.asyncio
    async def test_find_or_create_existing(self, store):
        existing = await store.register("a@x.com", "pw")

        user_id, is_new = await store.find_or_create("a@x.com")

        assert user_id == existing
        assert is_new is False
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_lookup_helpers(self, store, clock):
        user_id = await store.register("Alice@Example.com", "pw")
        await store.register("bob@example.com", "pw")

        assert store.exists(user_id)
        assert not store.exists(999)
        assert store.find_by_email("Alice@Example.com").id == user_id
        assert store.find_by_email("alice@example.com") is None
        assert store.get(user_id).created_at == clock.now
        assert [u.email for u in store.search("ALICE")] == ["Alice@Example.com"]
        assert len(store.search("example")) == 2
        assert [u.id for u in store.list_users()] == [user_id, user_id + 1]

    def test_get_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.get(42)
