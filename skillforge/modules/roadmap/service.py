"""
Roadmap Service - learning flow over a user's saved roadmaps.

Purpose
-------
Create, load, save and delete roadmaps stored in the ``roadmaps`` list of the
``users/<uid>`` profile document, and drive the learning flow: starting and
completing subtopics, time on task, cached resources and flashcards, module
quizzes, feedback and analytics.

Domain
------
- Flow rules live on the ``Roadmap`` aggregate; this service loads it,
  applies one change, persists it and publishes its domain events
- Points are awarded through ``ProgressionService`` only for real
  transitions (a second start or completion awards nothing). Undoing a
  completion keeps its points, and completing again awards nothing
- Roadmap list writes for one user are serialised by a per-user lock

Events
------
- ``roadmap.created`` / ``roadmap.deleted``
- ``roadmap.subtopic_started``, ``roadmap.subtopic_completed``,
  ``roadmap.subtopic_uncompleted``,
  ``roadmap.quiz_completed``, ``roadmap.completed`` (from the aggregate)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, TypeVar

from skillforge.core.logging.logger import LogContext, get_logger
from skillforge.domain.models.base import DomainValidationError
from skillforge.domain.models.roadmap import Roadmap, SubtopicCompletion
from skillforge.modules.shared.base_service import BaseService
from skillforge.modules.shared.constants import (
    NO_QUIZ_FEEDBACK,
    POINTS_COMPLETE_SUBTOPIC,
    POINTS_START_SUBTOPIC,
    USERS_COLLECTION,
)
from skillforge.modules.shared.exceptions import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from skillforge.modules.shared.formulas import calculate_quiz_reward

if TYPE_CHECKING:
    from skillforge.core.ai.generator import ChatTurn
    from skillforge.core.event.bus import EventBus
    from skillforge.core.store.base import DocumentStore
    from skillforge.domain.models.community import AnalyticsReport, ForumPost
    from skillforge.domain.models.progress import ProgressUpdate
    from skillforge.domain.models.roadmap import Flashcard, Module, QuizQuestion, Resource, Subtopic
    from skillforge.modules.learning.service import LearningContentService
    from skillforge.modules.progression.service import ProgressionService

logger = get_logger(__name__)

T = TypeVar("T")


class RoadmapService(BaseService):
    """
    Service for a user's roadmaps and the learning flow inside them.

    Public Methods
    --------------
    - create_roadmap() / save_roadmap() / delete_roadmap() / get_roadmap()
    - list_roadmaps()
    - start_subtopic() / complete_subtopic() / uncomplete_subtopic()
    - record_time()
    - load_resources() / load_flashcards()
    - start_quiz() / complete_quiz()
    - generate_feedback() / analyze() / community_threads() / ask_tutor()
    """

    def __init__(
        self,
        store: DocumentStore,
        learning: LearningContentService,
        progression: ProgressionService,
        event_bus: EventBus,
    ) -> None:
        super().__init__(event_bus, logger)
        self._store = store
        self._learning = learning
        self._progression = progression
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def list_roadmaps(self, user_id: str) -> List[Roadmap]:
        return [Roadmap.from_document(r) for r in await self._load_documents(user_id)]

    async def get_roadmap(self, user_id: str, roadmap_id: str) -> Roadmap:
        """
        Load one roadmap.

        Raises:
            NotFoundError: If the user or the roadmap does not exist
        """
        for document in await self._load_documents(user_id):
            if document.get("id") == roadmap_id:
                return Roadmap.from_document(document)
        raise NotFoundError("Roadmap", roadmap_id)

    # ========================================================================
    # PUBLIC API - Roadmap lifecycle
    # ========================================================================

    async def create_roadmap(self, user_id: str, topic: str) -> Roadmap:
        """
        Generate a roadmap for ``topic`` and save it to the user's list.

        Raises:
            ValidationError: If topic is blank
            GenerationError: If the structure could not be generated
        """
        self.validate_not_blank(topic, "topic")

        with LogContext(user_id=user_id, operation="roadmap.create"):
            modules = await self._learning.generate_roadmap_structure(topic.strip())
            roadmap = Roadmap.create(topic.strip(), modules)
            await self.save_roadmap(user_id, roadmap)

            self.log_operation(
                "roadmap.create",
                roadmap_id=roadmap.id,
                topic=roadmap.topic,
                module_count=len(roadmap.modules),
            )
            await self.emit_event(
                "roadmap.created",
                {"roadmap_id": roadmap.id, "topic": roadmap.topic},
                {"user_id": user_id},
            )
            return roadmap

    async def save_roadmap(self, user_id: str, roadmap: Roadmap) -> None:
        """Upsert ``roadmap`` by id into the user's roadmap list."""
        async with self._store.deferred_notifications(), self._lock_for(user_id):
            documents = await self._load_documents(user_id)
            self._upsert(documents, roadmap)
            await self._write_documents(user_id, documents)

    async def delete_roadmap(self, user_id: str, roadmap_id: str) -> bool:
        """Remove a roadmap. Returns False if it was not in the list."""
        async with self._store.deferred_notifications(), self._lock_for(user_id):
            documents = await self._load_documents(user_id)
            remaining = [d for d in documents if d.get("id") != roadmap_id]
            if len(remaining) == len(documents):
                return False
            await self._write_documents(user_id, remaining)

        self.log_operation("roadmap.delete", user_id=user_id, roadmap_id=roadmap_id)
        await self.emit_event("roadmap.deleted", {"roadmap_id": roadmap_id}, {"user_id": user_id})
        return True

    # ========================================================================
    # PUBLIC API - Learning flow
    # ========================================================================

    async def start_subtopic(
        self, user_id: str, roadmap_id: str, module_id: str, subtopic_id: str
    ) -> Optional[ProgressUpdate]:
        """Start a subtopic and award its points. None if it was already started."""
        def change(roadmap: Roadmap) -> bool:
            self._with_subtopic(roadmap, module_id, subtopic_id)
            return roadmap.start_subtopic(module_id, subtopic_id)

        with LogContext(user_id=user_id, roadmap_id=roadmap_id, operation="roadmap.start_subtopic"):
            _, started = await self._apply(user_id, roadmap_id, change)
            if not started:
                return None
            return await self._progression.award(
                user_id, POINTS_START_SUBTOPIC, reason="start_subtopic"
            )

    async def complete_subtopic(
        self, user_id: str, roadmap_id: str, module_id: str, subtopic_id: str
    ) -> Optional[ProgressUpdate]:
        """
        Complete a subtopic and award its points.

        Returns None if it was already completed, or if it is being completed
        again after an undo; a subtopic pays its completion points once.
        """
        def change(roadmap: Roadmap) -> Optional[SubtopicCompletion]:
            self._with_subtopic(roadmap, module_id, subtopic_id)
            return roadmap.complete_subtopic(module_id, subtopic_id)

        with LogContext(
            user_id=user_id, roadmap_id=roadmap_id, operation="roadmap.complete_subtopic"
        ):
            _, completion = await self._apply(user_id, roadmap_id, change)
            if completion is None or not completion.first_time:
                return None
            return await self._progression.award(
                user_id, POINTS_COMPLETE_SUBTOPIC, reason="complete_subtopic"
            )

    async def uncomplete_subtopic(
        self, user_id: str, roadmap_id: str, module_id: str, subtopic_id: str
    ) -> bool:
        """
        Mark a subtopic incomplete again. Points already awarded are kept and a
        completed roadmap stays completed. Returns False if it was not completed.
        """
        def change(roadmap: Roadmap) -> bool:
            self._with_subtopic(roadmap, module_id, subtopic_id)
            return roadmap.uncomplete_subtopic(module_id, subtopic_id)

        with LogContext(
            user_id=user_id, roadmap_id=roadmap_id, operation="roadmap.uncomplete_subtopic"
        ):
            _, changed = await self._apply(user_id, roadmap_id, change)
            return changed

    async def record_time(
        self,
        user_id: str,
        roadmap_id: str,
        module_id: str,
        subtopic_id: str,
        seconds: int,
    ) -> None:
        """Set (not add) the time spent on a subtopic."""
        self.validate_non_negative_int(seconds, "seconds")

        def change(roadmap: Roadmap) -> bool:
            self._with_subtopic(roadmap, module_id, subtopic_id)
            roadmap.record_time(module_id, subtopic_id, seconds)
            return True

        await self._apply(user_id, roadmap_id, change)

    async def load_resources(
        self,
        user_id: str,
        roadmap_id: str,
        module_id: str,
        subtopic_id: str,
        *,
        refresh: bool = False,
    ) -> List[Resource]:
        """
        Resources for a subtopic, generated on first use and cached on it.

        An empty generation result is returned but not cached, so the next
        call tries again.
        """
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        subtopic = self._with_subtopic(roadmap, module_id, subtopic_id)
        if subtopic.resources and not refresh:
            return list(subtopic.resources)

        resources = await self._learning.fetch_resources_for_subtopic(
            roadmap.topic, subtopic.title
        )
        if resources:

            def change(target: Roadmap) -> bool:
                target.set_resources(module_id, subtopic_id, resources)
                return True

            await self._apply(user_id, roadmap_id, change)
        return resources

    async def load_flashcards(
        self,
        user_id: str,
        roadmap_id: str,
        module_id: str,
        subtopic_id: str,
        *,
        refresh: bool = False,
    ) -> List[Flashcard]:
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        subtopic = self._with_subtopic(roadmap, module_id, subtopic_id)
        if subtopic.flashcards and not refresh:
            return list(subtopic.flashcards)

        flashcards = await self._learning.generate_flashcards(roadmap.topic, subtopic.title)
        if flashcards:

            def change(target: Roadmap) -> bool:
                target.set_flashcards(module_id, subtopic_id, flashcards)
                return True

            await self._apply(user_id, roadmap_id, change)
        return flashcards

    async def start_quiz(
        self, user_id: str, roadmap_id: str, module_id: str
    ) -> List[QuizQuestion]:
        """Generate questions for a module quiz. Nothing is persisted."""
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        module = self._with_module(roadmap, module_id)
        return await self._learning.generate_quiz(
            module.title, [s.title for s in module.subtopics]
        )

    async def complete_quiz(
        self,
        user_id: str,
        roadmap_id: str,
        module_id: str,
        score: int,
        total: int,
    ) -> ProgressUpdate:
        """
        Record a quiz result and award ``100 + floor(score / total * 50)``.

        Raises:
            ValidationError: If score or total is negative or score exceeds total
            InvalidOperationError: If the module quiz was already completed
        """
        def change(roadmap: Roadmap) -> bool:
            self._with_module(roadmap, module_id)
            return roadmap.complete_quiz(module_id, score, total)

        with LogContext(user_id=user_id, roadmap_id=roadmap_id, operation="roadmap.complete_quiz"):
            _, recorded = await self._apply(user_id, roadmap_id, change)
            if not recorded:
                raise InvalidOperationError("complete_quiz", "quiz already completed")

            return await self._progression.award(
                user_id, calculate_quiz_reward(score, total), reason="complete_quiz"
            )

    # ========================================================================
    # PUBLIC API - Feedback and analytics
    # ========================================================================

    async def generate_feedback(self, user_id: str, roadmap_id: str) -> str:
        """
        Generate a performance review from completed quizzes and store it on
        the roadmap. Without any completed quiz the stored text asks the
        learner to finish one first.
        """
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        performance = roadmap.performance_data()
        if performance:
            feedback = await self._learning.generate_feedback(roadmap.topic, performance)
        else:
            feedback = NO_QUIZ_FEEDBACK

        def change(target: Roadmap) -> bool:
            target.feedback = feedback
            return True

        await self._apply(user_id, roadmap_id, change)
        return feedback

    async def analyze(self, user_id: str, roadmap_id: str) -> AnalyticsReport:
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        return await self._learning.generate_deep_analysis(roadmap.topic, roadmap.study_data())

    async def community_threads(self, user_id: str, roadmap_id: str) -> List[ForumPost]:
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        return await self._learning.generate_community_threads(roadmap.topic)

    async def ask_tutor(
        self,
        user_id: str,
        roadmap_id: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        roadmap = await self.get_roadmap(user_id, roadmap_id)
        return await self._learning.chat_with_assistant(history, message, roadmap.topic)

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    async def _load_documents(self, user_id: str) -> List[dict[str, Any]]:
        profile = await self._store.get(USERS_COLLECTION, user_id)
        if profile is None:
            raise NotFoundError("User", user_id)
        return list(profile.get("roadmaps") or [])

    async def _write_documents(self, user_id: str, documents: List[dict[str, Any]]) -> None:
        await self._store.update_fields(USERS_COLLECTION, user_id, {"roadmaps": documents})

    @staticmethod
    def _upsert(documents: List[dict[str, Any]], roadmap: Roadmap) -> None:
        document = roadmap.to_document()
        for i, existing in enumerate(documents):
            if existing.get("id") == roadmap.id:
                documents[i] = document
                return
        documents.append(document)

    async def _apply(
        self,
        user_id: str,
        roadmap_id: str,
        change: Callable[[Roadmap], T],
    ) -> tuple[Roadmap, T]:
        """
        Load, change, persist and publish one roadmap.

        ``change`` returns a falsy value when nothing changed; the roadmap is
        then not written back.
        """
        async with self._store.deferred_notifications(), self._lock_for(user_id):
            documents = await self._load_documents(user_id)
            document = next((d for d in documents if d.get("id") == roadmap_id), None)
            if document is None:
                raise NotFoundError("Roadmap", roadmap_id)

            roadmap = Roadmap.from_document(document)
            try:
                result = change(roadmap)
            except DomainValidationError as e:
                raise ValidationError(e.field or "roadmap", str(e)) from e

            if result:
                self._upsert(documents, roadmap)
                await self._write_documents(user_id, documents)

        await self.publish_domain_events(
            roadmap.clear_domain_events(), {"user_id": user_id}
        )
        return roadmap, result

    @staticmethod
    def _with_module(roadmap: Roadmap, module_id: str) -> Module:
        module = roadmap.find_module(module_id)
        if module is None:
            raise NotFoundError("Module", module_id)
        return module

    @classmethod
    def _with_subtopic(cls, roadmap: Roadmap, module_id: str, subtopic_id: str) -> Subtopic:
        subtopic = cls._with_module(roadmap, module_id).find_subtopic(subtopic_id)
        if subtopic is None:
            raise NotFoundError("Subtopic", subtopic_id)
        return subtopic
