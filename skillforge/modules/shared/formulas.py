"""
SkillForge Formulas

Pure calculation functions for the gamification rules: level curve, quiz
reward and leaderboard avatar tier.

- Pure functions only (no side effects)
- No config or store access (all parameters passed in)
- Deterministic and integer-exact

Usage
-----
    from skillforge.modules.shared.formulas import calculate_level_from_points

    level = calculate_level_from_points(400)  # 3
"""

from __future__ import annotations

import math

from skillforge.modules.shared.constants import (
    AVATAR_TIERS,
    DEFAULT_AVATAR,
    MIN_LEVEL,
    POINTS_PER_LEVEL_UNIT,
    QUIZ_BASE_REWARD,
    QUIZ_SCORE_BONUS,
)


def calculate_level_from_points(points: int) -> int:
    """
    Level for a point total: ``floor(1 + sqrt(points / 100))``.

    Computed with integer arithmetic; ``floor(sqrt(p / 100))`` equals
    ``isqrt(p // 100)`` for every non-negative integer ``p``.

    Example:
        >>> calculate_level_from_points(0)
        1
        >>> calculate_level_from_points(399)
        2
        >>> calculate_level_from_points(400)
        3
    """
    if points <= 0:
        return MIN_LEVEL
    return MIN_LEVEL + math.isqrt(points // POINTS_PER_LEVEL_UNIT)


def calculate_points_for_level(level: int) -> int:
    """
    Points at which ``level`` starts: ``100 * (level - 1)**2``.

    Example:
        >>> calculate_points_for_level(1)
        0
        >>> calculate_points_for_level(3)
        400
    """
    if level <= MIN_LEVEL:
        return 0
    return POINTS_PER_LEVEL_UNIT * (level - 1) ** 2


def calculate_quiz_reward(score: int, total: int) -> int:
    """
    Points for finishing a quiz: ``100 + floor(score / total * 50)``.

    A zero-question quiz earns the base reward only.

    Example:
        >>> calculate_quiz_reward(5, 5)
        150
        >>> calculate_quiz_reward(3, 5)
        130
    """
    if total <= 0:
        return QUIZ_BASE_REWARD
    return QUIZ_BASE_REWARD + (score * QUIZ_SCORE_BONUS) // total


def avatar_for_points(points: int) -> str:
    """
    Example:
        >>> avatar_for_points(1001)
        '🧙‍♂️'
        >>> avatar_for_points(100)
        '👤'
    """
    for threshold, avatar in AVATAR_TIERS:
        if points > threshold:
            return avatar
    return DEFAULT_AVATAR
