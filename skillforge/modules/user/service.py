"""
User Service - profile reads, edits and live profile updates.

Progress fields (``points``, ``level``, ``badges``) are owned by
``ProgressionService`` and the roadmap list by ``RoadmapService``; this
service refuses to write them.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Union

from skillforge.core.exceptions import DocumentNotFoundError
from skillforge.core.logging.logger import get_logger
from skillforge.domain.models.user import UserProfile
from skillforge.modules.shared.base_service import BaseService
from skillforge.modules.shared.constants import USERS_COLLECTION
from skillforge.modules.shared.exceptions import NotFoundError, ValidationError

if TYPE_CHECKING:
    from skillforge.core.event.bus import EventBus
    from skillforge.core.store.base import DocumentStore, Unsubscribe

logger = get_logger(__name__)

ProfileCallback = Callable[[Optional[UserProfile]], Union[None, Awaitable[None]]]

# Fields written through other services
PROTECTED_FIELDS = frozenset({"id", "points", "level", "badges", "roadmaps"})


class UserService(BaseService):
    def __init__(self, store: DocumentStore, event_bus: EventBus) -> None:
        super().__init__(event_bus, logger)
        self._store = store

    async def get_profile(self, user_id: str) -> UserProfile:
        """
        Load a profile.

        Raises:
            NotFoundError: If the user has no profile document
        """
        document = await self._store.get(USERS_COLLECTION, user_id)
        if document is None:
            raise NotFoundError("User", user_id)
        return UserProfile.from_document(document)

    async def update_profile(self, user_id: str, partial: Dict[str, Any]) -> UserProfile:
        """
        Merge editable fields (``name``, ``email`` and similar) into a profile.

        Raises:
            ValidationError: If ``partial`` is empty or touches a protected field
            NotFoundError: If the user has no profile document
        """
        if not partial:
            raise ValidationError("partial", "no fields to update")
        protected = sorted(PROTECTED_FIELDS.intersection(partial))
        if protected:
            raise ValidationError(protected[0], "field is managed by another service")
        if "name" in partial:
            self.validate_not_blank(partial["name"], "name")

        try:
            merged = await self._store.update_fields(USERS_COLLECTION, user_id, dict(partial))
        except DocumentNotFoundError as e:
            raise NotFoundError("User", user_id) from e

        self.log_operation("user.update_profile", user_id=user_id, fields=sorted(partial))
        await self.emit_event("user.profile_updated", {"fields": sorted(partial)}, {"user_id": user_id})
        return UserProfile.from_document(merged)

    async def subscribe_to_profile(self, user_id: str, callback: ProfileCallback) -> Unsubscribe:
        """
        Watch a profile. ``callback`` receives the current profile at once,
        then the new profile after every write, and ``None`` when missing.
        """

        async def on_change(document: Optional[Dict[str, Any]]) -> None:
            profile = UserProfile.from_document(document) if document is not None else None
            result = callback(profile)
            if inspect.isawaitable(result):
                await result

        return await self._store.subscribe(USERS_COLLECTION, user_id, on_change)
