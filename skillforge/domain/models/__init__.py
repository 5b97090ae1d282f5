"""
Domain models for SkillForge.

Rich models separate from storage documents; services convert with
``to_document`` / ``from_document``.
"""

from skillforge.domain.models.base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
    Entity,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)
from skillforge.domain.models.community import AnalyticsReport, ForumPost
from skillforge.domain.models.progress import (
    BADGE_RULES,
    BadgeRule,
    EarnedBadge,
    ProgressUpdate,
    UserProgress,
)
from skillforge.domain.models.roadmap import (
    Flashcard,
    Module,
    QuizQuestion,
    Resource,
    Roadmap,
    Subtopic,
    SubtopicCompletion,
)
from skillforge.domain.models.user import UserProfile

__all__ = [
    "AggregateRoot",
    "DomainEvent",
    "DomainValidationError",
    "Entity",
    "validate_non_negative",
    "validate_not_empty",
    "validate_positive",
    "validate_range",
    "AnalyticsReport",
    "ForumPost",
    "BADGE_RULES",
    "BadgeRule",
    "EarnedBadge",
    "ProgressUpdate",
    "UserProgress",
    "Flashcard",
    "Module",
    "QuizQuestion",
    "Resource",
    "Roadmap",
    "Subtopic",
    "SubtopicCompletion",
    "UserProfile",
]
