"""
Unit Tests for DocumentAuthProvider
===================================

Test Coverage
-------------
- Registration creates credentials and a fresh profile
- Login with the right and wrong password
- Duplicate and invalid registrations
- Auth state subscription (immediate and on change)
"""

import pytest
from werkzeug.security import check_password_hash

from skillforge.core.auth.provider import DocumentAuthProvider
from skillforge.modules.shared.constants import CREDENTIALS_COLLECTION, USERS_COLLECTION
from skillforge.modules.shared.exceptions import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    ValidationError,
)


@pytest.fixture
def auth(memory_store, event_bus):
    return DocumentAuthProvider(memory_store, event_bus, hash_method="pbkdf2:sha256:1000")


@pytest.mark.unit
class TestRegister:
    async def test_creates_profile_and_signs_in(self, auth, memory_store):
        # Act
        uid = await auth.register("Ada", " Ada@Example.com ", "secret1")

        # Assert
        profile = await memory_store.get(USERS_COLLECTION, uid)
        assert profile["name"] == "Ada"
        assert profile["email"] == "ada@example.com"
        assert (profile["points"], profile["level"], profile["badges"]) == (0, 1, [])
        assert auth.current_uid == uid

    async def test_password_is_stored_hashed(self, auth, memory_store):
        # Act
        uid = await auth.register("Ada", "ada@example.com", "secret1")

        # Assert
        credentials = await memory_store.get(CREDENTIALS_COLLECTION, "ada@example.com")
        assert set(credentials) == {"uid", "password_hash"}
        assert credentials["uid"] == uid
        assert credentials["password_hash"].startswith("pbkdf2:sha256:1000$")
        assert check_password_hash(credentials["password_hash"], "secret1")
        profile = await memory_store.get(USERS_COLLECTION, uid)
        assert "password" not in profile and "password_hash" not in profile

    async def test_duplicate_email_is_rejected(self, auth):
        # Arrange
        await auth.register("Ada", "ada@example.com", "secret1")

        # Act & Assert
        with pytest.raises(EmailAlreadyRegisteredError):
            await auth.register("Other", "ADA@example.com", "secret2")

    @pytest.mark.parametrize(
        "name, email, password, field",
        [
            ("", "ada@example.com", "secret1", "name"),
            ("Ada", "not-an-email", "secret1", "email"),
            ("Ada", "ada@example.com", "12345", "password"),
        ],
    )
    async def test_invalid_input_is_rejected(self, auth, name, email, password, field):
        with pytest.raises(ValidationError) as exc_info:
            await auth.register(name, email, password)
        assert exc_info.value.field == field


@pytest.mark.unit
class TestLogin:
    async def test_login_returns_uid(self, auth):
        # Arrange
        uid = await auth.register("Ada", "ada@example.com", "secret1")
        await auth.logout()

        # Act
        signed_in = await auth.login("ADA@example.com", "secret1")

        # Assert
        assert signed_in == uid
        assert auth.current_uid == uid

    async def test_wrong_password_and_unknown_email_fail_alike(self, auth):
        # Arrange
        await auth.register("Ada", "ada@example.com", "secret1")
        await auth.logout()

        # Act
        with pytest.raises(AuthenticationError) as wrong_password:
            await auth.login("ada@example.com", "nope123")
        with pytest.raises(AuthenticationError) as unknown_email:
            await auth.login("bob@example.com", "secret1")

        # Assert
        assert str(wrong_password.value) == str(unknown_email.value)
        assert auth.current_uid is None


@pytest.mark.unit
class TestAuthState:
    async def test_subscriber_sees_current_state_then_changes(self, auth):
        # Arrange
        states = []

        # Act
        unsubscribe = await auth.subscribe_to_auth_state(states.append)
        uid = await auth.register("Ada", "ada@example.com", "secret1")
        await auth.logout()
        unsubscribe()
        await auth.login("ada@example.com", "secret1")

        # Assert
        assert states == [None, uid, None]

    async def test_logout_when_signed_out_publishes_nothing(self, auth):
        # Arrange
        states = []
        await auth.subscribe_to_auth_state(states.append)

        # Act
        await auth.logout()

        # Assert
        assert states == [None]
