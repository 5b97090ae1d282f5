"""
Shared foundations for SkillForge feature modules.

- ``base_service``: BaseService for all domain services
- ``exceptions``: domain exception hierarchy
- ``formulas``: pure gamification formulas
- ``constants``: learning-flow and gamification constants
"""

from skillforge.modules.shared.base_service import BaseService
from skillforge.modules.shared.exceptions import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    InvalidOperationError,
    NotFoundError,
    SkillForgeDomainException,
    ValidationError,
)
from skillforge.modules.shared.formulas import (
    avatar_for_points,
    calculate_level_from_points,
    calculate_points_for_level,
    calculate_quiz_reward,
)

__all__ = [
    "BaseService",
    "AuthenticationError",
    "EmailAlreadyRegisteredError",
    "InvalidOperationError",
    "NotFoundError",
    "SkillForgeDomainException",
    "ValidationError",
    "avatar_for_points",
    "calculate_level_from_points",
    "calculate_points_for_level",
    "calculate_quiz_reward",
]
