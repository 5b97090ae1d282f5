"""
Progression Service - single-writer path for a learner's points and badges.

Purpose
-------
Load the profile, run the calculator, write ``points``, ``level`` and
``badges`` back with ``update_fields`` and announce what changed.

Writes for the same user are serialised by a per-user ``asyncio.Lock`` so two
awards racing in this process cannot lose an update. Profile subscribers are
notified after the lock is released, so a subscriber may award or reconcile
the same user. Writers in other processes are last-write-wins at the store.

Events
------
- ``progress.points_awarded``: every award, including zero-point passes
- ``progress.leveled_up``: level increased
- ``progress.badge_earned``: once per newly earned badge, in table order
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from skillforge.core.logging.logger import LogContext, get_logger
from skillforge.domain.models.progress import ProgressUpdate, UserProgress
from skillforge.modules.progression.calculator import add_points
from skillforge.modules.shared.base_service import BaseService
from skillforge.modules.shared.constants import USERS_COLLECTION
from skillforge.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from skillforge.core.event.bus import EventBus
    from skillforge.core.store.base import DocumentStore

logger = get_logger(__name__)


class ProgressionService(BaseService):
    def __init__(self, store: DocumentStore, event_bus: EventBus) -> None:
        super().__init__(event_bus, logger)
        self._store = store
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def get_progress(self, user_id: str) -> UserProgress:
        document = await self._store.get(USERS_COLLECTION, user_id)
        if document is None:
            raise NotFoundError("User", user_id)
        return UserProgress.from_profile_fields(document.get("points"), document.get("badges"))

    async def award(
        self,
        user_id: str,
        amount: int,
        *,
        reason: str,
        now: Optional[datetime] = None,
    ) -> ProgressUpdate:
        """
        Add ``amount`` points to a user and persist the successor progress.

        Args:
            user_id: Profile key in the users collection
            amount: Non-negative point award
            reason: Short label for logs and events (e.g. "complete_subtopic")
            now: Unlock timestamp for new badges

        Returns:
            ProgressUpdate describing the change

        Raises:
            ValidationError: If amount is negative
            NotFoundError: If the user has no profile
        """
        self.validate_non_negative_int(amount, "amount")

        with LogContext(user_id=user_id, operation="progression.award"):
            async with self._store.deferred_notifications(), self._lock_for(user_id):
                current = await self.get_progress(user_id)
                result = add_points(current, amount, now)
                await self._store.update_fields(
                    USERS_COLLECTION, user_id, result.progress.to_profile_fields()
                )

            update = ProgressUpdate(
                user_id=user_id,
                points_awarded=amount,
                points=result.progress.points,
                previous_level=result.previous_level,
                level=result.progress.level,
                newly_earned=result.newly_earned,
            )

            self.log.info(
                "Points awarded",
                extra={
                    "reason": reason,
                    "points_awarded": amount,
                    "points": update.points,
                    "level": update.level,
                    "leveled_up": update.leveled_up,
                    "new_badges": [b.id for b in update.newly_earned],
                },
            )

            await self._announce(update, reason)
            return update

    async def reconcile(self, user_id: str) -> ProgressUpdate:
        """Zero-point pass: rewrite the level and award any missed badges."""
        return await self.award(user_id, 0, reason="reconcile")

    async def _announce(self, update: ProgressUpdate, reason: str) -> None:
        context = {"user_id": update.user_id}
        await self.emit_event(
            "progress.points_awarded",
            {
                "reason": reason,
                "points_awarded": update.points_awarded,
                "points": update.points,
                "level": update.level,
            },
            context,
        )
        if update.leveled_up:
            await self.emit_event(
                "progress.leveled_up",
                {"old_level": update.previous_level, "new_level": update.level},
                context,
            )
        for badge in update.newly_earned:
            await self.emit_event(
                "progress.badge_earned",
                {"badge_id": badge.id, "badge_name": badge.name, "icon": badge.icon},
                context,
            )
