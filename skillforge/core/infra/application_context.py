"""
Application Context (Kernel) - SkillForge infrastructure orchestration
======================================================================

Purpose
-------
Build every component in dependency order, hand them to entry points and
tear them down in reverse.

Initialization Order
--------------------
    1. Config validation and logging
    2. DatabaseService + schema (skipped when a store is injected)
    3. EventBus
    4. DocumentStore
    5. Generation stack: generator, model selector, retry policy, invoker,
       client (skipped when ``with_generation=False``)
    6. Video lookup
    7. Auth provider
    8. Domain services: progression, user, leaderboard, learning, roadmap

Shutdown Order (Reverse)
------------------------
    1. Video lookup HTTP client
    2. EventBus listeners
    3. DatabaseService
    4. Logging

Tests inject a store (with the bus it publishes on), a generator and a video
lookup so no database, network or API key is needed.
"""

from __future__ import annotations

import time
from typing import Optional

from skillforge.core.ai.client import GenerationClient
from skillforge.core.ai.generator import GeminiSettings, GeminiTextGenerator, TextGenerator
from skillforge.core.ai.invoker import ResilientInvoker
from skillforge.core.ai.model_selector import ModelSelector
from skillforge.core.ai.retry_policy import RetryPolicy
from skillforge.core.auth.provider import DocumentAuthProvider
from skillforge.core.config.config import Config
from skillforge.core.database.service import DatabaseService
from skillforge.core.event.bus import EventBus
from skillforge.core.logging.logger import get_logger, setup_logging, shutdown_logging
from skillforge.core.store.base import DocumentStore
from skillforge.core.store.sql import SqlDocumentStore
from skillforge.core.video.youtube import VideoLookup, YouTubeSettings, YouTubeVideoLookup
from skillforge.modules.leaderboard.service import LeaderboardService
from skillforge.modules.learning.service import LearningContentService
from skillforge.modules.progression.service import ProgressionService
from skillforge.modules.roadmap.service import RoadmapService
from skillforge.modules.user.service import UserService

logger = get_logger(__name__)


class ApplicationContext:
    """
    Kernel for infrastructure orchestration and dependency injection.

    Usage:
        context = ApplicationContext()
        await context.initialize()
        try:
            roadmap = await context.roadmaps.create_roadmap(uid, "Rust")
        finally:
            await context.shutdown()
    """

    def __init__(
        self,
        *,
        store: Optional[DocumentStore] = None,
        event_bus: Optional[EventBus] = None,
        generator: Optional[TextGenerator] = None,
        video: Optional[VideoLookup] = None,
        with_generation: bool = True,
        configure_logging: bool = True,
    ) -> None:
        self._injected_store = store
        self._injected_bus = event_bus
        self._injected_generator = generator
        self._injected_video = video
        self._with_generation = with_generation
        self._configure_logging = configure_logging

        self._owns_database = False
        self._owned_video: Optional[YouTubeVideoLookup] = None
        self._event_bus: Optional[EventBus] = None
        self._store: Optional[DocumentStore] = None
        self._generation: Optional[GenerationClient] = None
        self._auth: Optional[DocumentAuthProvider] = None
        self._progression: Optional[ProgressionService] = None
        self._users: Optional[UserService] = None
        self._leaderboard: Optional[LeaderboardService] = None
        self._learning: Optional[LearningContentService] = None
        self._roadmaps: Optional[RoadmapService] = None
        self._initialized = False

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Raises:
            RuntimeError: If already initialized or initialization fails
        """
        if self._initialized:
            raise RuntimeError("ApplicationContext already initialized")

        start_time = time.perf_counter()

        try:
            if self._configure_logging:
                setup_logging(to_file=not Config.is_testing())
            Config.validate()

            if self._injected_store is None:
                await DatabaseService.initialize()
                self._owns_database = True
                await DatabaseService.create_schema()
                logger.info("✓ Database initialized")

            self._event_bus = self._injected_bus or EventBus()
            self._store = self._injected_store or SqlDocumentStore(self._event_bus)

            if self._with_generation:
                self._generation = self._build_generation_client()
                logger.info(
                    "✓ Generation client ready",
                    extra={"models": list(self._generation.invoker.selector.models)},
                )

            video = self._injected_video
            if video is None:
                self._owned_video = YouTubeVideoLookup(YouTubeSettings.from_config())
                video = self._owned_video

            self._auth = DocumentAuthProvider(self._store, self._event_bus)
            self._progression = ProgressionService(self._store, self._event_bus)
            self._users = UserService(self._store, self._event_bus)
            self._leaderboard = LeaderboardService(
                self._store, self._event_bus, default_limit=Config.LEADERBOARD_LIMIT
            )
            if self._generation is not None:
                self._learning = LearningContentService(self._generation, video, self._event_bus)
                self._roadmaps = RoadmapService(
                    self._store, self._learning, self._progression, self._event_bus
                )

            self._initialized = True
            logger.info(
                "✓ Application context initialized (%.2fms)",
                (time.perf_counter() - start_time) * 1000,
            )

        except Exception as exc:
            logger.critical(
                "Application context initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            await self._release()
            raise RuntimeError("Failed to initialize application context") from exc

    def _build_generation_client(self) -> GenerationClient:
        if self._injected_generator is not None:
            generator = self._injected_generator
            models = tuple(Config.GEMINI_MODELS)
        else:
            settings = GeminiSettings.from_config()
            generator = GeminiTextGenerator(settings)
            models = settings.models

        invoker = ResilientInvoker(ModelSelector(models), RetryPolicy.from_config())
        return GenerationClient(generator, invoker)

    # ========================================================================
    # SHUTDOWN
    # ========================================================================

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("ApplicationContext not initialized, nothing to shut down")
            return

        await self._release()
        self._initialized = False
        logger.info("✓ Application context shutdown complete")
        if self._configure_logging:
            shutdown_logging()

    async def _release(self) -> None:
        if self._owned_video is not None:
            try:
                await self._owned_video.aclose()
            except Exception as exc:
                logger.error("Error closing video lookup client", extra={"error": str(exc)})
            self._owned_video = None

        if self._event_bus is not None:
            self._event_bus.clear()

        if self._owns_database:
            try:
                await DatabaseService.shutdown()
                logger.info("✓ DatabaseService shut down")
            except Exception as exc:
                logger.error(
                    "Error shutting down database",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
            self._owns_database = False

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    def _require(self, component: Optional[object], name: str):
        if not self._initialized or component is None:
            raise RuntimeError(f"{name} not available: ApplicationContext not initialized")
        return component

    @property
    def event_bus(self) -> EventBus:
        return self._require(self._event_bus, "EventBus")

    @property
    def store(self) -> DocumentStore:
        return self._require(self._store, "DocumentStore")

    @property
    def generation(self) -> GenerationClient:
        return self._require(self._generation, "GenerationClient")

    @property
    def auth(self) -> DocumentAuthProvider:
        return self._require(self._auth, "DocumentAuthProvider")

    @property
    def progression(self) -> ProgressionService:
        return self._require(self._progression, "ProgressionService")

    @property
    def users(self) -> UserService:
        return self._require(self._users, "UserService")

    @property
    def leaderboard(self) -> LeaderboardService:
        return self._require(self._leaderboard, "LeaderboardService")

    @property
    def learning(self) -> LearningContentService:
        return self._require(self._learning, "LearningContentService")

    @property
    def roadmaps(self) -> RoadmapService:
        return self._require(self._roadmaps, "RoadmapService")

    @property
    def is_initialized(self) -> bool:
        return self._initialized
