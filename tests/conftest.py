"""
Pytest Configuration and Fixtures for SkillForge Tests
======================================================

Purpose
-------
Reusable fakes and fixtures for the SkillForge test suite.

Responsibilities
----------------
- Scripted text generator and recording sleep for generation tests
- Event bus and in-memory document store for service tests
- Seeded learner profiles and roadmap factories
- Database engines for integration tests (SQLite always, PostgreSQL via
  testcontainers when Docker is available)

Architecture Notes
------------------
- Unit tests use fakes (fast, isolated, no network)
- Integration tests use a real database through DatabaseService
- Fixtures are function scoped unless they start a container
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")

from typing import Any, Callable, List, Optional, Sequence, Union  # noqa: E402

import pytest  # noqa: E402

from skillforge.core.ai.client import GenerationClient  # noqa: E402
from skillforge.core.ai.generator import ChatTurn  # noqa: E402
from skillforge.core.ai.invoker import ResilientInvoker  # noqa: E402
from skillforge.core.ai.model_selector import ModelSelector  # noqa: E402
from skillforge.core.ai.retry_policy import RetryPolicy  # noqa: E402
from skillforge.core.event.bus import EventBus  # noqa: E402
from skillforge.core.store.memory import MemoryDocumentStore  # noqa: E402
from skillforge.core.video.youtube import VideoResult  # noqa: E402
from skillforge.domain.models.roadmap import Module, Roadmap, Subtopic  # noqa: E402
from skillforge.domain.models.progress import UserProgress  # noqa: E402
from skillforge.domain.models.user import UserProfile  # noqa: E402
from skillforge.modules.shared.constants import USERS_COLLECTION  # noqa: E402

Outcome = Union[str, BaseException, Callable[[str], str]]

TEST_MODELS = ("model-a", "model-b", "model-c")


# ============================================================================
# FAKES
# ============================================================================


class FakeTextGenerator:
    """
    ``TextGenerator`` that replays scripted outcomes in call order.

    Each outcome is a response string, an exception to raise, or a callable
    taking the model name and returning text. When the script runs out the
    last outcome repeats.
    """

    def __init__(self, *outcomes: Outcome) -> None:
        self._outcomes: List[Outcome] = list(outcomes) or [""]
        self.calls: List[dict[str, Any]] = []

    def _next(self, model: str) -> str:
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(model)
        return outcome

    async def generate(
        self,
        model: str,
        prompt: str,
        *,
        schema: Any = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        self.calls.append(
            {
                "kind": "generate",
                "model": model,
                "prompt": prompt,
                "schema": schema,
                "system_instruction": system_instruction,
            }
        )
        return self._next(model)

    async def chat(
        self,
        model: str,
        history: Sequence[ChatTurn],
        message: str,
        *,
        system_instruction: Optional[str] = None,
    ) -> str:
        self.calls.append(
            {
                "kind": "chat",
                "model": model,
                "history": list(history),
                "message": message,
                "system_instruction": system_instruction,
            }
        )
        return self._next(model)

    @property
    def models_called(self) -> List[str]:
        return [c["model"] for c in self.calls]


class RecordingSleep:
    """Awaitable sleep that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def delays_ms(self) -> List[int]:
        return [round(s * 1000) for s in self.delays]


class FakeVideoLookup:
    def __init__(self, result: Optional[VideoResult] = None) -> None:
        self.result = result
        self.queries: List[str] = []

    async def search(self, query: str) -> Optional[VideoResult]:
        self.queries.append(query)
        return self.result


# ============================================================================
# GENERATION FIXTURES
# ============================================================================


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_invoker(recording_sleep):
    """Factory for invokers over ``TEST_MODELS`` with a recording sleep."""

    def factory(
        models: Sequence[str] = TEST_MODELS,
        *,
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        deadline_seconds: Optional[float] = None,
        start_index: int = 0,
        clock: Optional[Callable[[], float]] = None,
    ) -> ResilientInvoker:
        kwargs: dict[str, Any] = {"sleep": recording_sleep}
        if clock is not None:
            kwargs["clock"] = clock
        return ResilientInvoker(
            ModelSelector(models, start_index=start_index),
            RetryPolicy(
                max_attempts_per_model=max_attempts,
                base_delay_ms=base_delay_ms,
                deadline_seconds=deadline_seconds,
            ),
            **kwargs,
        )

    return factory


@pytest.fixture
def make_client(make_invoker):
    """Factory for a GenerationClient over a scripted generator."""

    def factory(*outcomes: Outcome) -> tuple[GenerationClient, FakeTextGenerator]:
        generator = FakeTextGenerator(*outcomes)
        return GenerationClient(generator, make_invoker()), generator

    return factory


# ============================================================================
# STORE FIXTURES
# ============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(listener_timeout_seconds=1.0)


@pytest.fixture
def memory_store(event_bus) -> MemoryDocumentStore:
    return MemoryDocumentStore(event_bus)


@pytest.fixture
def fake_video() -> FakeVideoLookup:
    return FakeVideoLookup()


@pytest.fixture
def seed_user(memory_store):
    """Write a learner profile into the memory store and return it."""

    async def factory(
        user_id: str = "user-1",
        name: str = "Ada",
        points: int = 0,
        roadmaps: Sequence[Roadmap] = (),
    ) -> UserProfile:
        profile = UserProfile.new(user_id, name, f"{user_id}@example.com")
        profile.progress = UserProgress(points=points)
        profile.roadmaps = list(roadmaps)
        document = profile.to_document()
        await memory_store.set(USERS_COLLECTION, user_id, document)
        return UserProfile.from_document(document)

    return factory


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


def make_roadmap(
    topic: str = "Rust",
    module_count: int = 2,
    subtopics_per_module: int = 2,
    roadmap_id: str = "map-1",
) -> Roadmap:
    modules = [
        Module(
            id=f"mod-{i}",
            title=f"Module {i}",
            description=f"About module {i}",
            subtopics=[
                Subtopic(id=f"sub-{i}-{j}", title=f"Subtopic {i}.{j}")
                for j in range(subtopics_per_module)
            ],
        )
        for i in range(module_count)
    ]
    return Roadmap(
        roadmap_id=roadmap_id,
        topic=topic,
        created_at="2026-01-01T00:00:00+00:00",
        modules=modules,
    )


@pytest.fixture
def roadmap_factory():
    return make_roadmap


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def collect_events(bus: EventBus, *event_names: str) -> List[tuple[str, dict[str, Any]]]:
    """Subscribe to ``event_names`` and return the list events are appended to."""
    received: List[tuple[str, dict[str, Any]]] = []

    def recorder(name: str) -> Callable[[dict[str, Any]], None]:
        def listener(payload: dict[str, Any]) -> None:
            received.append((name, dict(payload)))

        return listener

    for name in event_names:
        bus.subscribe(name, recorder(name), identifier=f"test-collector:{name}:{id(received)}")
    return received


def assert_domain_event_emitted(aggregate, event_name: str) -> bool:
    return any(e.event_name == event_name for e in aggregate.get_pending_events())


# ============================================================================
# DATABASE FIXTURES (integration)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_url():
    """
    Async URL of a throwaway PostgreSQL container.

    Skips the requesting tests when Docker or testcontainers is unavailable.
    """
    testcontainers_postgres = pytest.importorskip("testcontainers.postgres")
    try:
        container = testcontainers_postgres.PostgresContainer("postgres:16-alpine", driver="asyncpg")
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL container unavailable: {exc}")
    try:
        yield container.get_connection_url()
    finally:
        container.stop()


@pytest.fixture(params=["sqlite", "postgres"])
def database_url(request, tmp_path):
    if request.param == "sqlite":
        return f"sqlite+aiosqlite:///{tmp_path / 'skillforge-test.db'}"
    return request.getfixturevalue("postgres_url")


@pytest.fixture
async def sql_store(database_url, event_bus):
    """SqlDocumentStore over a fresh schema; the engine is disposed afterwards."""
    from skillforge.core.database.service import DatabaseService
    from skillforge.core.store.sql import SqlDocumentStore

    await DatabaseService.initialize(database_url)
    await DatabaseService.drop_schema()
    await DatabaseService.create_schema()
    try:
        yield SqlDocumentStore(event_bus)
    finally:
        await DatabaseService.shutdown()
