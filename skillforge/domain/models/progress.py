"""
Progress value objects: badge rules, earned badges and a learner's progress.

``UserProgress`` is immutable. Its level is derived from points on every
read and never stored independently, so the level invariant cannot drift.
Successor states are produced by the progression calculator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from skillforge.domain.models.base import DomainValidationError, validate_non_negative
from skillforge.modules.shared.formulas import calculate_level_from_points


@dataclass(frozen=True)
class BadgeRule:
    id: str
    name: str
    icon: str
    description: str
    threshold: int


# Evaluation order is declaration order, not threshold order
BADGE_RULES: tuple[BadgeRule, ...] = (
    BadgeRule("novice", "Novice Explorer", "🧭", "Earned 100 XP", 100),
    BadgeRule("apprentice", "Apprentice Builder", "🔨", "Earned 500 XP", 500),
    BadgeRule("expert", "Knowledge Master", "🧠", "Earned 1000 XP", 1000),
    BadgeRule("wizard", "Skill Wizard", "🧙‍♂️", "Earned 5000 XP", 5000),
)


@dataclass(frozen=True)
class EarnedBadge:
    """A badge rule plus the moment it was unlocked (UTC)."""

    id: str
    name: str
    icon: str
    description: str
    unlocked_at: datetime

    @classmethod
    def from_rule(cls, rule: BadgeRule, unlocked_at: datetime) -> EarnedBadge:
        return cls(
            id=rule.id,
            name=rule.name,
            icon=rule.icon,
            description=rule.description,
            unlocked_at=unlocked_at,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "unlocked_at": self.unlocked_at.isoformat(),
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> EarnedBadge:
        raw = data.get("unlocked_at")
        if isinstance(raw, datetime):
            unlocked_at = raw
        elif raw:
            unlocked_at = parse_timestamp(str(raw))
        else:
            unlocked_at = datetime.fromtimestamp(0, tz=timezone.utc)
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            icon=str(data.get("icon", "")),
            description=str(data.get("description", "")),
            unlocked_at=unlocked_at,
        )


def parse_timestamp(raw: str) -> datetime:
    """ISO-8601 timestamp, accepting the ``Z`` suffix that JavaScript writes."""
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


@dataclass(frozen=True)
class UserProgress:
    """
    Immutable snapshot of a learner's points and badges.

    Attributes
    ----------
    points : int
        Accumulated points (>= 0)
    badges : tuple[EarnedBadge, ...]
        Earned badges, unique by id, in the order they were earned
    """

    points: int = 0
    badges: tuple[EarnedBadge, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_non_negative(self.points, "points")
        ids = [b.id for b in self.badges]
        if len(ids) != len(set(ids)):
            raise DomainValidationError("badges must have unique ids", field="badges")

    @property
    def level(self) -> int:
        return calculate_level_from_points(self.points)

    @property
    def badge_ids(self) -> frozenset[str]:
        return frozenset(b.id for b in self.badges)

    def has_badge(self, badge_id: str) -> bool:
        return badge_id in self.badge_ids

    @classmethod
    def from_profile_fields(
        cls, points: Any, badges: Optional[Iterable[Mapping[str, Any]]]
    ) -> UserProgress:
        return cls(
            points=int(points or 0),
            badges=tuple(EarnedBadge.from_document(b) for b in (badges or ())),
        )

    def to_profile_fields(self) -> Dict[str, Any]:
        return {
            "points": self.points,
            "level": self.level,
            "badges": [b.to_document() for b in self.badges],
        }


@dataclass(frozen=True)
class ProgressUpdate:
    """Outcome of one award, returned to callers and published as events."""

    user_id: str
    points_awarded: int
    points: int
    previous_level: int
    level: int
    newly_earned: tuple[EarnedBadge, ...] = ()

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level
