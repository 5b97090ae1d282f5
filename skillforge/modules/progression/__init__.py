"""
Progression module: points, levels and badges.

- ``calculator``: pure level and badge rules
- ``service``: persisted awards with events
"""

from skillforge.modules.progression.calculator import (
    LevelProgress,
    PointsResult,
    add_points,
    evaluate_badges,
    level_for_points,
    level_progress,
    points_for_level,
)
from skillforge.modules.progression.service import ProgressionService

__all__ = [
    "LevelProgress",
    "PointsResult",
    "ProgressionService",
    "add_points",
    "evaluate_badges",
    "level_for_points",
    "level_progress",
    "points_for_level",
]
