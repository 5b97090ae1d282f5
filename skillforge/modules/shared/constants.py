"""
SkillForge Domain Constants

Learning-flow and gamification constants: point awards, level curve,
leaderboard tiers and content generation sizes.

Infrastructure concerns (timeouts, retry budgets, log settings) belong in
``skillforge.core.config``.
"""

from __future__ import annotations

from typing import Final

# ============================================================================
# POINT AWARDS
# ============================================================================

POINTS_START_SUBTOPIC: Final[int] = 10
POINTS_COMPLETE_SUBTOPIC: Final[int] = 50
QUIZ_BASE_REWARD: Final[int] = 100
QUIZ_SCORE_BONUS: Final[int] = 50  # scaled by score / total

# ============================================================================
# LEVEL CURVE
# ============================================================================

POINTS_PER_LEVEL_UNIT: Final[int] = 100  # level = floor(1 + sqrt(points / 100))
MIN_LEVEL: Final[int] = 1

# ============================================================================
# LEADERBOARD
# ============================================================================

DEFAULT_LEADERBOARD_LIMIT: Final[int] = 10

# Avatar tiers, checked top-down; strictly greater than the threshold
AVATAR_TIERS: Final[tuple[tuple[int, str], ...]] = (
    (1000, "🧙‍♂️"),
    (500, "🎓"),
    (100, "🚀"),
)
DEFAULT_AVATAR: Final[str] = "👤"

# ============================================================================
# CONTENT GENERATION
# ============================================================================

QUIZ_QUESTION_COUNT: Final[int] = 5
QUIZ_OPTION_COUNT: Final[int] = 4
FLASHCARD_COUNT: Final[int] = 5
RESOURCE_SUGGESTION_COUNT: Final[int] = 3
COMMUNITY_THREAD_COUNT: Final[int] = 3

DEFAULT_FEEDBACK: Final[str] = "Keep up the great work!"

# ============================================================================
# STORE COLLECTIONS
# ============================================================================

USERS_COLLECTION: Final[str] = "users"
CREDENTIALS_COLLECTION: Final[str] = "credentials"

NO_QUIZ_FEEDBACK: Final[str] = (
    "Complete at least one module quiz to get personalized AI feedback!"
)
