"""
Roadmap Domain Model for SkillForge.

Purpose
-------
A study roadmap for one topic: ordered modules, each with subtopics and a
closing quiz. The ``Roadmap`` aggregate owns every learning-flow rule:

- a subtopic is started once and completed once; completing implies started
- time on task is set (not added) and never negative
- a module quiz is completed once and stores score and question count
- the roadmap is completed when every subtopic and every quiz is completed,
  and stays completed

Point awards are not applied here. Methods report whether a transition
actually happened and the service awards points for real transitions only.

Usage Example
-------------
>>> roadmap = Roadmap.create("Rust", modules)
>>> if roadmap.start_subtopic(module_id, subtopic_id):
...     await progression.award(user_id, POINTS_START_SUBTOPIC, reason="start_subtopic")
>>> store_doc = roadmap.to_document()
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from skillforge.domain.models.base import (
    AggregateRoot,
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
)

RESOURCE_TYPES = ("video", "article", "doc")


def _stamp() -> int:
    return int(time.time() * 1000)


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class Resource:
    title: str
    url: str
    type: str

    def __post_init__(self) -> None:
        if self.type not in RESOURCE_TYPES:
            raise DomainValidationError(
                f"type must be one of {RESOURCE_TYPES}, got {self.type!r}", field="type"
            )

    def to_document(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url, "type": self.type}

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Resource:
        return cls(title=data["title"], url=data["url"], type=data["type"])


@dataclass(frozen=True)
class Flashcard:
    front: str
    back: str

    def to_document(self) -> Dict[str, Any]:
        return {"front": self.front, "back": self.back}

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Flashcard:
        return cls(front=data["front"], back=data["back"])


@dataclass(frozen=True)
class QuizQuestion:
    """
    One multiple-choice question. ``correct_answer`` is the text of the
    correct option, not its index.
    """

    question: str
    options: tuple[str, ...]
    correct_answer: str
    explanation: str

    def is_correct(self, answer: str) -> bool:
        return answer == self.correct_answer

    def to_document(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> QuizQuestion:
        return cls(
            question=data["question"],
            options=tuple(data.get("options") or ()),
            correct_answer=data["correct_answer"],
            explanation=data.get("explanation", ""),
        )


@dataclass(frozen=True)
class SubtopicCompletion:
    """A subtopic moving to completed. ``first_time`` is False after an undo."""

    first_time: bool


# ============================================================================
# ENTITIES
# ============================================================================


@dataclass
class Subtopic:
    id: str
    title: str
    is_completed: bool = False
    is_started: bool = False
    completion_rewarded: bool = False
    time_spent_seconds: int = 0
    resources: List[Resource] = field(default_factory=list)
    flashcards: List[Flashcard] = field(default_factory=list)
    last_session_date: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "is_completed": self.is_completed,
            "is_started": self.is_started,
            "completion_rewarded": self.completion_rewarded,
            "time_spent_seconds": self.time_spent_seconds,
            "resources": [r.to_document() for r in self.resources],
            "flashcards": [f.to_document() for f in self.flashcards],
        }
        if self.last_session_date is not None:
            doc["last_session_date"] = self.last_session_date
        return doc

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Subtopic:
        is_completed = bool(data.get("is_completed", False))
        return cls(
            id=data["id"],
            title=data["title"],
            is_completed=is_completed,
            is_started=bool(data.get("is_started", False)),
            completion_rewarded=bool(data.get("completion_rewarded", is_completed)),
            time_spent_seconds=int(data.get("time_spent_seconds", 0)),
            resources=[Resource.from_document(r) for r in data.get("resources") or ()],
            flashcards=[Flashcard.from_document(f) for f in data.get("flashcards") or ()],
            last_session_date=data.get("last_session_date"),
        )


@dataclass
class Module:
    id: str
    title: str
    description: str
    subtopics: List[Subtopic] = field(default_factory=list)
    quiz_completed: bool = False
    quiz_score: Optional[int] = None
    quiz_total_questions: Optional[int] = None

    @property
    def is_completed(self) -> bool:
        return self.quiz_completed and all(s.is_completed for s in self.subtopics)

    def find_subtopic(self, subtopic_id: str) -> Optional[Subtopic]:
        return next((s for s in self.subtopics if s.id == subtopic_id), None)

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "subtopics": [s.to_document() for s in self.subtopics],
            "quiz_completed": self.quiz_completed,
        }
        if self.quiz_score is not None:
            doc["quiz_score"] = self.quiz_score
        if self.quiz_total_questions is not None:
            doc["quiz_total_questions"] = self.quiz_total_questions
        return doc

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Module:
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            subtopics=[Subtopic.from_document(s) for s in data.get("subtopics") or ()],
            quiz_completed=bool(data.get("quiz_completed", False)),
            quiz_score=data.get("quiz_score"),
            quiz_total_questions=data.get("quiz_total_questions"),
        )


# ============================================================================
# AGGREGATE ROOT
# ============================================================================


class Roadmap(AggregateRoot):
    """
    Study roadmap aggregate.

    Attributes
    ----------
    topic : str
        Subject the roadmap was generated for
    created_at : str
        ISO-8601 UTC creation time
    modules : list[Module]
        Ordered modules
    is_completed : bool
        True once every subtopic and quiz is completed
    feedback : Optional[str]
        Latest generated performance review
    """

    def __init__(
        self,
        roadmap_id: str,
        topic: str,
        created_at: str,
        modules: Sequence[Module],
        is_completed: bool = False,
        feedback: Optional[str] = None,
    ) -> None:
        super().__init__(roadmap_id)
        validate_not_empty(topic, "topic")
        self.topic = topic
        self.created_at = created_at
        self.modules: List[Module] = list(modules)
        self.is_completed = is_completed
        self.feedback = feedback

    @classmethod
    def create(cls, topic: str, modules: Sequence[Module]) -> Roadmap:
        return cls(
            roadmap_id=f"map-{_stamp()}",
            topic=topic,
            created_at=datetime.now(timezone.utc).isoformat(),
            modules=modules,
        )

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def find_module(self, module_id: str) -> Optional[Module]:
        return next((m for m in self.modules if m.id == module_id), None)

    def find_subtopic(self, module_id: str, subtopic_id: str) -> Optional[Subtopic]:
        module = self.find_module(module_id)
        return module.find_subtopic(subtopic_id) if module else None

    def _require_module(self, module_id: str) -> Module:
        module = self.find_module(module_id)
        if module is None:
            raise DomainValidationError(f"module {module_id} not in roadmap", field="module_id")
        return module

    def _require_subtopic(self, module_id: str, subtopic_id: str) -> Subtopic:
        subtopic = self._require_module(module_id).find_subtopic(subtopic_id)
        if subtopic is None:
            raise DomainValidationError(
                f"subtopic {subtopic_id} not in module {module_id}", field="subtopic_id"
            )
        return subtopic

    # ------------------------------------------------------------------ #
    # Learning flow
    # ------------------------------------------------------------------ #

    def start_subtopic(self, module_id: str, subtopic_id: str) -> bool:
        """Mark a subtopic started. Returns False if it already was."""
        subtopic = self._require_subtopic(module_id, subtopic_id)
        if subtopic.is_started:
            return False
        subtopic.is_started = True
        subtopic.last_session_date = datetime.now(timezone.utc).isoformat()
        self.add_domain_event(
            "roadmap.subtopic_started",
            {"roadmap_id": self.id, "module_id": module_id, "subtopic_id": subtopic_id},
        )
        return True

    def complete_subtopic(
        self, module_id: str, subtopic_id: str
    ) -> Optional[SubtopicCompletion]:
        """Mark a subtopic completed. Returns None if it already was."""
        subtopic = self._require_subtopic(module_id, subtopic_id)
        if subtopic.is_completed:
            return None
        first_time = not subtopic.completion_rewarded
        subtopic.is_completed = True
        subtopic.is_started = True
        subtopic.completion_rewarded = True
        self.add_domain_event(
            "roadmap.subtopic_completed",
            {
                "roadmap_id": self.id,
                "module_id": module_id,
                "subtopic_id": subtopic_id,
                "first_time": first_time,
            },
        )
        self.refresh_completion()
        return SubtopicCompletion(first_time=first_time)

    def uncomplete_subtopic(self, module_id: str, subtopic_id: str) -> bool:
        """
        Mark a completed subtopic incomplete again. Returns False if it was
        not completed.

        The subtopic stays started and keeps its completion reward, and a
        completed roadmap stays completed.
        """
        subtopic = self._require_subtopic(module_id, subtopic_id)
        if not subtopic.is_completed:
            return False
        subtopic.is_completed = False
        self.add_domain_event(
            "roadmap.subtopic_uncompleted",
            {"roadmap_id": self.id, "module_id": module_id, "subtopic_id": subtopic_id},
        )
        return True

    def record_time(self, module_id: str, subtopic_id: str, seconds: int) -> None:
        validate_non_negative(seconds, "seconds")
        subtopic = self._require_subtopic(module_id, subtopic_id)
        subtopic.time_spent_seconds = seconds
        subtopic.last_session_date = datetime.now(timezone.utc).isoformat()

    def set_resources(
        self, module_id: str, subtopic_id: str, resources: Sequence[Resource]
    ) -> None:
        self._require_subtopic(module_id, subtopic_id).resources = list(resources)

    def set_flashcards(
        self, module_id: str, subtopic_id: str, flashcards: Sequence[Flashcard]
    ) -> None:
        self._require_subtopic(module_id, subtopic_id).flashcards = list(flashcards)

    def complete_quiz(self, module_id: str, score: int, total: int) -> bool:
        """
        Record a module quiz result.

        Returns False (and changes nothing) if the quiz was already completed.

        Raises
        ------
        DomainValidationError
            If score or total is negative or score exceeds total.
        """
        validate_non_negative(score, "score")
        validate_non_negative(total, "total")
        if score > total:
            raise DomainValidationError(
                f"score {score} cannot exceed total {total}", field="score"
            )

        module = self._require_module(module_id)
        if module.quiz_completed:
            return False

        module.quiz_completed = True
        module.quiz_score = score
        module.quiz_total_questions = total
        self.add_domain_event(
            "roadmap.quiz_completed",
            {"roadmap_id": self.id, "module_id": module_id, "score": score, "total": total},
        )
        self.refresh_completion()
        return True

    def refresh_completion(self) -> bool:
        """Set ``is_completed`` when every module is done. Never resets it."""
        if self.is_completed:
            return False
        if self.modules and all(m.is_completed for m in self.modules):
            self.is_completed = True
            self.add_domain_event("roadmap.completed", {"roadmap_id": self.id, "topic": self.topic})
            return True
        return False

    # ------------------------------------------------------------------ #
    # Reporting
    # ------------------------------------------------------------------ #

    def completion_ratio(self) -> float:
        subtopics = [s for m in self.modules for s in m.subtopics]
        if not subtopics:
            return 0.0
        return sum(1 for s in subtopics if s.is_completed) / len(subtopics)

    def performance_data(self) -> List[Dict[str, Any]]:
        """Per-module quiz and time data for modules whose quiz is completed."""
        return [
            {
                "module": m.title,
                "quiz_score": m.quiz_score or 0,
                "quiz_total": m.quiz_total_questions or 5,
                "subtopics": [
                    {"title": s.title, "time": s.time_spent_seconds} for s in m.subtopics
                ],
            }
            for m in self.modules
            if m.quiz_completed
        ]

    def study_data(self) -> List[Dict[str, Any]]:
        return [
            {"title": s.title, "time": s.time_spent_seconds, "completed": s.is_completed}
            for m in self.modules
            for s in m.subtopics
        ]

    # ------------------------------------------------------------------ #
    # Persistence mapping
    # ------------------------------------------------------------------ #

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "id": self.id,
            "topic": self.topic,
            "created_at": self.created_at,
            "modules": [m.to_document() for m in self.modules],
            "is_completed": self.is_completed,
        }
        if self.feedback is not None:
            doc["feedback"] = self.feedback
        return doc

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Roadmap:
        return cls(
            roadmap_id=data["id"],
            topic=data["topic"],
            created_at=data.get("created_at", ""),
            modules=[Module.from_document(m) for m in data.get("modules") or ()],
            is_completed=bool(data.get("is_completed", False)),
            feedback=data.get("feedback"),
        )

    def __repr__(self) -> str:
        return f"<Roadmap {self.id} topic={self.topic!r} modules={len(self.modules)}>"
