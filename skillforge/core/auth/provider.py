"""
Email and password authentication over the document store.

Purpose
-------
Register, sign in and sign out learners, and notify subscribers when the
signed-in user changes.

Storage
-------
- ``credentials/<normalised email>``: ``{uid, password_hash}``
- ``users/<uid>``: the profile created at registration (points 0, level 1)

Passwords are hashed and checked with ``werkzeug.security``; the stored hash
string carries its own method, salt and cost. Profiles never hold password
material.

Auth state
----------
State changes are published as ``auth.state_changed`` on the EventBus.
``subscribe_to_auth_state`` delivers the current uid (or ``None``) at once,
then every change.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol, Union

from werkzeug.security import check_password_hash, generate_password_hash

from skillforge.core.event.types import ListenerPriority
from skillforge.core.logging.logger import get_logger
from skillforge.domain.models.user import UserProfile
from skillforge.modules.shared.constants import CREDENTIALS_COLLECTION, USERS_COLLECTION
from skillforge.modules.shared.exceptions import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    ValidationError,
)

if TYPE_CHECKING:
    from skillforge.core.event.bus import EventBus
    from skillforge.core.store.base import DocumentStore, Unsubscribe

logger = get_logger(__name__)

AUTH_STATE_CHANGED = "auth.state_changed"
DEFAULT_HASH_METHOD = "scrypt"
MIN_PASSWORD_LENGTH = 6

AuthStateCallback = Callable[[Optional[str]], Union[None, Awaitable[None]]]


class AuthProvider(Protocol):
    async def register(self, name: str, email: str, password: str) -> str:
        ...

    async def login(self, email: str, password: str) -> str:
        ...

    async def logout(self) -> None:
        ...

    async def subscribe_to_auth_state(self, callback: AuthStateCallback) -> Unsubscribe:
        ...


def normalize_email(email: str) -> str:
    return email.strip().lower()


class DocumentAuthProvider:
    """
    ``AuthProvider`` backed by a ``DocumentStore``.

    One provider tracks one signed-in user, matching a single client session.
    """

    def __init__(
        self,
        store: DocumentStore,
        event_bus: EventBus,
        *,
        hash_method: str = DEFAULT_HASH_METHOD,
    ) -> None:
        self._store = store
        self._bus = event_bus
        self._hash_method = hash_method
        self._current_uid: Optional[str] = None
        self._register_lock = asyncio.Lock()

    @property
    def current_uid(self) -> Optional[str]:
        return self._current_uid

    async def register(self, name: str, email: str, password: str) -> str:
        """
        Create credentials and a fresh profile, then sign the new user in.

        Raises:
            ValidationError: If name, email or password is unusable
            EmailAlreadyRegisteredError: If the email already has an account
        """
        key = normalize_email(email)
        if not name or not name.strip():
            raise ValidationError("name", "name cannot be empty")
        if "@" not in key:
            raise ValidationError("email", "email address is invalid")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                "password", f"password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        async with self._register_lock:
            if await self._store.get(CREDENTIALS_COLLECTION, key) is not None:
                raise EmailAlreadyRegisteredError(key)

            uid = uuid.uuid4().hex
            password_hash = await asyncio.to_thread(
                generate_password_hash, password, method=self._hash_method
            )
            await self._store.set(
                CREDENTIALS_COLLECTION, key, {"uid": uid, "password_hash": password_hash}
            )
            profile = UserProfile.new(uid, name.strip(), key)
            await self._store.set(USERS_COLLECTION, uid, profile.to_document())

        logger.info("User registered", extra={"user_id": uid})
        await self._set_current(uid)
        return uid

    async def login(self, email: str, password: str) -> str:
        """
        Raises:
            AuthenticationError: On an unknown email or a wrong password
        """
        credentials = await self._store.get(CREDENTIALS_COLLECTION, normalize_email(email))
        if credentials is None:
            logger.info("Login rejected", extra={"reason": "unknown_email"})
            raise AuthenticationError()

        matches = await asyncio.to_thread(
            check_password_hash, credentials["password_hash"], password
        )
        if not matches:
            logger.info("Login rejected", extra={"reason": "bad_password"})
            raise AuthenticationError()

        uid = credentials["uid"]
        logger.info("User signed in", extra={"user_id": uid})
        await self._set_current(uid)
        return uid

    async def logout(self) -> None:
        if self._current_uid is None:
            return
        logger.info("User signed out", extra={"user_id": self._current_uid})
        await self._set_current(None)

    async def subscribe_to_auth_state(self, callback: AuthStateCallback) -> Unsubscribe:
        async def listener(payload: dict[str, Any]) -> None:
            await _deliver(callback, payload.get("uid"))

        identifier = f"auth.state:{uuid.uuid4().hex}"
        self._bus.subscribe(
            AUTH_STATE_CHANGED, listener, priority=ListenerPriority.NORMAL, identifier=identifier
        )
        await _deliver(callback, self._current_uid)

        def unsubscribe() -> None:
            self._bus.unsubscribe(AUTH_STATE_CHANGED, identifier)

        return unsubscribe

    async def _set_current(self, uid: Optional[str]) -> None:
        self._current_uid = uid
        await self._bus.publish(AUTH_STATE_CHANGED, {"uid": uid})


async def _deliver(callback: AuthStateCallback, uid: Optional[str]) -> None:
    result = callback(uid)
    if inspect.isawaitable(result):
        await result
