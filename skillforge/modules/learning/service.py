"""
Learning Content Service - generated study material.

Purpose
-------
Turn topics and study data into roadmaps, resources, quizzes, flashcards,
feedback, tutor answers, community threads and analytics. Every call goes
through ``GenerationClient`` and therefore gets retry, backoff and model
fallback.

Failure semantics
-----------------
Terminal generation failures propagate to the caller, except for
``fetch_resources_for_subtopic`` which degrades to an empty list. Callers
show ``user_message_for(exc)`` rather than distinguishing sub-kinds.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Sequence
from urllib.parse import quote_plus

from skillforge.core.exceptions import GenerationError
from skillforge.core.logging.logger import get_logger
from skillforge.domain.models.base import DomainValidationError
from skillforge.domain.models.community import AnalyticsReport, ForumPost
from skillforge.domain.models.roadmap import (
    Flashcard,
    Module,
    QuizQuestion,
    Resource,
    Subtopic,
)
from skillforge.modules.learning import prompts
from skillforge.modules.learning.schemas import (
    AnalyticsSchema,
    FlashcardSchema,
    ForumPostSchema,
    ModuleOutline,
    QuizQuestionSchema,
    ResourceSuggestion,
)
from skillforge.modules.shared.base_service import BaseService
from skillforge.modules.shared.constants import DEFAULT_FEEDBACK

if TYPE_CHECKING:
    from skillforge.core.ai.client import GenerationClient
    from skillforge.core.ai.generator import ChatTurn
    from skillforge.core.event.bus import EventBus
    from skillforge.core.video.youtube import VideoLookup

logger = get_logger(__name__)

YOUTUBE_SEARCH_URL = "https://www.youtube.com/results?search_query={query}"
DUCKY_URL = "https://duckduckgo.com/?q=!ducky+{query}"


class LearningContentService(BaseService):
    def __init__(
        self,
        client: GenerationClient,
        videos: VideoLookup,
        event_bus: EventBus,
    ) -> None:
        super().__init__(event_bus, logger)
        self._client = client
        self._videos = videos

    # ------------------------------------------------------------------ #
    # Roadmap structure
    # ------------------------------------------------------------------ #

    async def generate_roadmap_structure(self, topic: str) -> list[Module]:
        """
        Generate modules and subtopics for ``topic``.

        Ids are hydrated here (``mod-<stamp>-<i>``, ``sub-<stamp>-<i>-<j>``)
        and every progress flag starts false.
        """
        self.validate_not_blank(topic, "topic")

        outlines = await self._client.generate_structured(
            prompts.roadmap_structure(topic),
            list[ModuleOutline],
            operation_name="learning.roadmap_structure",
        )

        stamp = int(time.time() * 1000)
        modules = [
            Module(
                id=f"mod-{stamp}-{i}",
                title=outline.title,
                description=outline.description,
                subtopics=[
                    Subtopic(id=f"sub-{stamp}-{i}-{j}", title=sub.title)
                    for j, sub in enumerate(outline.subtopics)
                ],
            )
            for i, outline in enumerate(outlines)
        ]

        self.log_operation(
            "learning.roadmap_structure",
            topic=topic,
            module_count=len(modules),
            subtopic_count=sum(len(m.subtopics) for m in modules),
        )
        return modules

    # ------------------------------------------------------------------ #
    # Resources
    # ------------------------------------------------------------------ #

    async def fetch_resources_for_subtopic(self, topic: str, subtopic: str) -> list[Resource]:
        """
        Suggest resources for a subtopic and resolve them to links.

        Videos resolve to a real watch URL when the lookup finds one and to a
        YouTube search URL otherwise. Docs and articles become DuckDuckGo
        "!ducky" URLs. Any failure yields ``[]``.
        """
        try:
            suggestions = await self._client.generate_structured(
                prompts.resource_suggestions(topic, subtopic),
                list[ResourceSuggestion],
                operation_name="learning.resources",
            )
            resources = [await self._resolve(s, topic, subtopic) for s in suggestions]
        except (GenerationError, DomainValidationError) as e:
            self.log_error("learning.resources", e, topic=topic, subtopic=subtopic)
            return []

        self.log.debug(
            "Resources generated",
            extra={"subtopic": subtopic, "resource_count": len(resources)},
        )
        return resources

    async def _resolve(self, suggestion: ResourceSuggestion, topic: str, subtopic: str) -> Resource:
        query = suggestion.search_query or f"{subtopic} {topic} tutorial"

        if suggestion.type == "video":
            video = await self._videos.search(query)
            if video is not None:
                return Resource(title=video.title, url=video.watch_url, type="video")
            return Resource(
                title=suggestion.title,
                url=YOUTUBE_SEARCH_URL.format(query=quote_plus(query)),
                type="video",
            )

        if suggestion.type == "doc":
            return Resource(
                title=suggestion.title,
                url=DUCKY_URL.format(query=quote_plus(f"{query} documentation")),
                type="doc",
            )

        return Resource(
            title=suggestion.title,
            url=DUCKY_URL.format(query=quote_plus(query)),
            type="article",
        )

    # ------------------------------------------------------------------ #
    # Quizzes and flashcards
    # ------------------------------------------------------------------ #

    async def generate_quiz(self, module_title: str, subtopics: Sequence[str]) -> list[QuizQuestion]:
        raw = await self._client.generate_structured(
            prompts.module_quiz(module_title, subtopics),
            list[QuizQuestionSchema],
            operation_name="learning.quiz",
        )

        questions = []
        for item in raw:
            if item.correct_answer not in item.options:
                self.log.warning(
                    "Dropping quiz question whose answer is not an option",
                    extra={"module_title": module_title, "question": item.question},
                )
                continue
            questions.append(
                QuizQuestion(
                    question=item.question,
                    options=tuple(item.options),
                    correct_answer=item.correct_answer,
                    explanation=item.explanation,
                )
            )
        return questions

    async def generate_flashcards(self, topic: str, subtopic: str) -> list[Flashcard]:
        cards = await self._client.generate_structured(
            prompts.flashcards(topic, subtopic),
            list[FlashcardSchema],
            operation_name="learning.flashcards",
        )
        return [Flashcard(front=c.front, back=c.back) for c in cards]

    # ------------------------------------------------------------------ #
    # Feedback, tutoring, community, analytics
    # ------------------------------------------------------------------ #

    async def generate_feedback(self, topic: str, performance: Sequence[dict[str, Any]]) -> str:
        text = await self._client.generate_text(
            prompts.performance_feedback(topic, performance),
            operation_name="learning.feedback",
        )
        return text.strip() or DEFAULT_FEEDBACK

    async def chat_with_assistant(
        self, history: Sequence[ChatTurn], message: str, context: str
    ) -> str:
        self.validate_not_blank(message, "message")
        return await self._client.chat(
            history,
            message,
            system_instruction=prompts.tutor_instruction(context),
            operation_name="learning.chat",
        )

    async def generate_community_threads(self, topic: str) -> list[ForumPost]:
        posts = await self._client.generate_structured(
            prompts.community_threads(topic),
            list[ForumPostSchema],
            operation_name="learning.community",
        )
        return [
            ForumPost(
                id=p.id,
                author=p.author,
                avatar=p.avatar,
                content=p.content,
                likes=p.likes,
                replies=[
                    ForumPost(
                        id=r.id,
                        author=r.author,
                        avatar=r.avatar,
                        content=r.content,
                        is_ai_generated=r.is_ai_generated,
                    )
                    for r in p.replies
                ],
                is_ai_generated=p.is_ai_generated,
            )
            for p in posts
        ]

    async def generate_deep_analysis(
        self, topic: str, study_data: Sequence[dict[str, Any]]
    ) -> AnalyticsReport:
        report = await self._client.generate_structured(
            prompts.deep_analysis(topic, study_data),
            AnalyticsSchema,
            operation_name="learning.analysis",
        )
        return AnalyticsReport(
            struggle_areas=tuple(report.struggle_areas),
            strong_areas=tuple(report.strong_areas),
            recommendations=report.recommendations,
            predicted_challenges=report.predicted_challenges,
        )
