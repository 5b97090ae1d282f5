"""Leaderboard of learners by points."""

from skillforge.modules.leaderboard.service import LeaderboardEntry, LeaderboardService

__all__ = ["LeaderboardEntry", "LeaderboardService"]
