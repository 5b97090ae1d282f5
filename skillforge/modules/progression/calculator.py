"""
Progression Calculator - points to level and badges.

Purpose
-------
Pure functions mapping an accumulated point total to a level and a badge set.

Guarantees
----------
- Pure: no hidden state, the same inputs give the same outputs
- Monotonic: points, level and badges never decrease
- Each badge is awarded exactly once, the first time its threshold is met
- ``amount == 0`` is a reconciliation pass that awards any badge whose
  threshold the current total already meets but which was never recorded

Level curve: ``level = floor(1 + sqrt(points / 100))``

>>> [level_for_points(p) for p in (0, 99, 100, 399, 400, 900)]
[1, 1, 2, 2, 3, 4]
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Sequence

from skillforge.domain.models.base import DomainValidationError
from skillforge.domain.models.progress import BADGE_RULES, BadgeRule, EarnedBadge, UserProgress
from skillforge.modules.shared.formulas import (
    calculate_level_from_points,
    calculate_points_for_level,
)


@dataclass(frozen=True)
class PointsResult:
    progress: UserProgress
    newly_earned: tuple[EarnedBadge, ...]
    previous_level: int

    @property
    def leveled_up(self) -> bool:
        return self.progress.level > self.previous_level

    def __iter__(self) -> Iterator[Any]:
        # Unpacks as (updated, newly_earned)
        yield self.progress
        yield self.newly_earned


@dataclass(frozen=True)
class LevelProgress:
    """Where a point total sits inside its level, for progress bars."""

    level: int
    points_into_level: int
    points_for_next_level: int

    @property
    def fraction(self) -> float:
        if self.points_for_next_level <= 0:
            return 0.0
        return self.points_into_level / self.points_for_next_level


def level_for_points(points: int) -> int:
    return calculate_level_from_points(points)


def points_for_level(level: int) -> int:
    """Points at which ``level`` starts."""
    return calculate_points_for_level(level)


def level_progress(points: int) -> LevelProgress:
    level = level_for_points(points)
    start = points_for_level(level)
    end = points_for_level(level + 1)
    return LevelProgress(
        level=level,
        points_into_level=max(0, points - start),
        points_for_next_level=end - start,
    )


def evaluate_badges(
    points: int,
    earned_ids: frozenset[str],
    now: datetime,
    rules: Sequence[BadgeRule] = BADGE_RULES,
) -> tuple[EarnedBadge, ...]:
    """Badges whose threshold ``points`` meets and which are not yet earned, in table order."""
    return tuple(
        EarnedBadge.from_rule(rule, now)
        for rule in rules
        if points >= rule.threshold and rule.id not in earned_ids
    )


def add_points(
    current: UserProgress,
    amount: int,
    now: Optional[datetime] = None,
    rules: Sequence[BadgeRule] = BADGE_RULES,
) -> PointsResult:
    """
    Apply a non-negative point award.

    Args:
        current: Up-to-date progress snapshot
        amount: Points to add (>= 0; 0 re-evaluates badges only)
        now: Unlock timestamp for new badges (defaults to UTC now)
        rules: Badge table, evaluated in declaration order

    Returns:
        PointsResult with the successor progress and the newly earned badges

    Raises:
        DomainValidationError: If amount is negative or not an integer

    Example:
        >>> result = add_points(UserProgress(points=99), 1)
        >>> [b.id for b in result.newly_earned]
        ['novice']
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise DomainValidationError(
            f"amount must be an integer, got {type(amount).__name__}", field="amount"
        )
    if amount < 0:
        raise DomainValidationError(f"amount must be non-negative, got {amount}", field="amount")

    new_points = current.points + amount
    newly_earned = evaluate_badges(
        new_points,
        current.badge_ids,
        now or datetime.now(timezone.utc),
        rules,
    )

    return PointsResult(
        progress=UserProgress(points=new_points, badges=current.badges + newly_earned),
        newly_earned=newly_earned,
        previous_level=current.level,
    )
