"""Tests for UserManager and SignInManager against a real (in-memory) database."""

import logging
from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from core.identity import (
    SignInManager,
    UserManager,
    create_session_token,
    read_session_token,
    verify_password,
)
from models.user import User


class TestUserManager:
    @pytest.mark.asyncio
    async def test_create_hashes_and_persists(self, test_db):
        manager = UserManager(test_db)

        result = await manager.create(User(username="carol"), "secret")

        assert result.succeeded
        stored = test_db.query(User).filter(User.username == "carol").one()
        assert stored.id is not None
        assert stored.hashed_password != "secret"
        assert verify_password("secret", stored.hashed_password)

    @pytest.mark.asyncio
    async def test_duplicate_username(self, test_db, alice):
        manager = UserManager(test_db)

        result = await manager.create(User(username="alice"), "other")

        assert not result.succeeded
        assert [e.code for e in result.errors] == ["DuplicateUserName"]
        assert test_db.query(User).count() == 1

    @pytest.mark.asyncio
    async def test_integrity_error_reported_as_duplicate(self, test_db, monkeypatch):
        manager = UserManager(test_db)
        # Simulate another request inserting the same name between lookup and commit.
        monkeypatch.setattr(manager, "_find_by_name", lambda name: None)

        def failing_commit():
            raise IntegrityError("INSERT INTO users", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(test_db, "commit", failing_commit)

        result = await manager.create(User(username="carol"), "secret")

        assert not result.succeeded
        assert [e.code for e in result.errors] == ["DuplicateUserName"]

    @pytest.mark.asyncio
    async def test_invalid_username_characters(self, test_db):
        result = await UserManager(test_db).create(User(username="bad name"), "secret")

        assert [e.code for e in result.errors] == ["InvalidUserName"]
        assert test_db.query(User).count() == 0

    @pytest.mark.asyncio
    async def test_password_policy(self, test_db):
        manager = UserManager(test_db, password_min_length=6)

        empty = await manager.create(User(username="carol"), "")
        short = await manager.create(User(username="carol"), "abc")

        assert [e.code for e in empty.errors] == ["PasswordRequired"]
        assert [e.code for e in short.errors] == ["PasswordTooShort"]
        assert test_db.query(User).count() == 0

    @pytest.mark.asyncio
    async def test_find_by_name_is_exact(self, test_db, alice):
        manager = UserManager(test_db)

        assert (await manager.find_by_name("alice")).id == alice.id
        assert await manager.find_by_name("Alice") is None
        assert await manager.find_by_name("bob") is None

    @pytest.mark.asyncio
    async def test_password_with_null_byte_is_rejected(self, test_db):
        result = await UserManager(test_db).create(User(username="carol"), "a\x00b")

        assert not result.succeeded
        assert [e.code for e in result.errors] == ["PasswordInvalid"]
        assert test_db.query(User).count() == 0

    @pytest.mark.asyncio
    async def test_hasher_value_error_becomes_error_result(self, test_db, monkeypatch):
        def rejecting_hash(password):
            raise ValueError("password rejected")

        monkeypatch.setattr("core.identity.get_password_hash", rejecting_hash)

        result = await UserManager(test_db).create(User(username="carol"), "secret")

        assert not result.succeeded
        assert [e.code for e in result.errors] == ["PasswordInvalid"]
        assert test_db.query(User).count() == 0

    @pytest.mark.asyncio
    async def test_check_password_with_corrupt_hash(self, test_db):
        user = User(username="dave", hashed_password="not-a-hash")
        assert await UserManager(test_db).check_password(user, "anything") is False


class TestSignInManager:
    @pytest.mark.asyncio
    async def test_success_issues_token(self, test_db, alice):
        result = await SignInManager(UserManager(test_db)).password_sign_in(alice, "p1")

        assert result.succeeded
        assert read_session_token(result.token) == "alice"

    @pytest.mark.asyncio
    async def test_failure_issues_nothing(self, test_db, alice):
        result = await SignInManager(UserManager(test_db)).password_sign_in(alice, "wrong")

        assert not result.succeeded
        assert result.token is None


class TestSessionToken:
    def test_expired_token_is_rejected(self):
        token = create_session_token("alice", expires_delta=timedelta(minutes=-1))
        assert read_session_token(token) is None

    def test_garbage_token_is_rejected(self):
        assert read_session_token("garbage") is None
        assert read_session_token(None) is None

    def test_rejected_token_is_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="core.identity"):
            assert read_session_token("garbage") is None

        assert any(r.getMessage().startswith("Session token rejected: ") for r in caplog.records)
