"""
Leaderboard Service - top learners by points.

Purpose
-------
Rank profiles in the users collection by ``points`` (descending) and keep
live subscribers current: any write to a user document triggers a re-query.

Errors
------
``top`` propagates store errors. Subscribers never see an exception; a
failed re-query delivers an empty board and is logged.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Union

from skillforge.core.exceptions import SkillForgeInfrastructureException
from skillforge.core.logging.logger import get_logger
from skillforge.modules.shared.base_service import BaseService
from skillforge.modules.shared.constants import DEFAULT_LEADERBOARD_LIMIT, USERS_COLLECTION
from skillforge.modules.shared.formulas import avatar_for_points, calculate_level_from_points

if TYPE_CHECKING:
    from skillforge.core.event.bus import EventBus
    from skillforge.core.store.base import DocumentChange, DocumentStore, Unsubscribe

logger = get_logger(__name__)


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    name: str
    points: int
    level: int
    avatar: str

    @classmethod
    def from_document(cls, rank: int, document: Dict[str, Any]) -> LeaderboardEntry:
        points = document.get("points")
        if isinstance(points, bool) or not isinstance(points, int):
            points = 0
        return cls(
            rank=rank,
            user_id=str(document.get("id", "")),
            name=document.get("name") or "Anonymous",
            points=points,
            level=calculate_level_from_points(points),
            avatar=avatar_for_points(points),
        )


BoardCallback = Callable[[List[LeaderboardEntry]], Union[None, Awaitable[None]]]


class LeaderboardService(BaseService):
    def __init__(
        self,
        store: DocumentStore,
        event_bus: EventBus,
        default_limit: int = DEFAULT_LEADERBOARD_LIMIT,
    ) -> None:
        super().__init__(event_bus, logger)
        self._store = store
        self._default_limit = default_limit

    async def top(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        """
        Top ``limit`` learners, highest points first. Ranks start at 1.

        Raises:
            ValidationError: If limit is negative or not an integer
        """
        limit = self._default_limit if limit is None else limit
        self.validate_non_negative_int(limit, "limit")
        if limit == 0:
            return []

        documents = await self._store.query_top(USERS_COLLECTION, "points", limit)
        return [LeaderboardEntry.from_document(i, d) for i, d in enumerate(documents, start=1)]

    async def subscribe(self, callback: BoardCallback, limit: Optional[int] = None) -> Unsubscribe:
        """
        Deliver the board now and again after every user document change.

        Re-queries are serialised so deliveries arrive in order.
        """
        lock = asyncio.Lock()

        async def refresh() -> None:
            async with lock:
                try:
                    board = await self.top(limit)
                except SkillForgeInfrastructureException as e:
                    self.log_error("leaderboard.refresh", e)
                    board = []
                result = callback(board)
                if inspect.isawaitable(result):
                    await result

        async def on_change(change: DocumentChange) -> None:
            await refresh()

        unsubscribe = await self._store.subscribe_collection(USERS_COLLECTION, on_change)
        await refresh()
        return unsubscribe
