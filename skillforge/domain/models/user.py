"""
UserProfile Domain Model.

The profile document stored under ``users/<uid>``. It never carries a
password; credentials live in their own collection. ``level`` is stored for
readers such as the leaderboard but is always rewritten from ``points``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from skillforge.domain.models.progress import EarnedBadge, UserProgress
from skillforge.domain.models.roadmap import Roadmap


@dataclass
class UserProfile:
    id: str
    name: str
    email: str
    roadmaps: List[Roadmap] = field(default_factory=list)
    progress: UserProgress = field(default_factory=UserProgress)

    @property
    def points(self) -> int:
        return self.progress.points

    @property
    def level(self) -> int:
        return self.progress.level

    @property
    def badges(self) -> tuple[EarnedBadge, ...]:
        return self.progress.badges

    def find_roadmap(self, roadmap_id: str) -> Optional[Roadmap]:
        return next((r for r in self.roadmaps if r.id == roadmap_id), None)

    @classmethod
    def new(cls, user_id: str, name: str, email: str) -> UserProfile:
        return cls(id=user_id, name=name, email=email)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "roadmaps": [r.to_document() for r in self.roadmaps],
            **self.progress.to_profile_fields(),
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> UserProfile:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            roadmaps=[Roadmap.from_document(r) for r in data.get("roadmaps") or ()],
            progress=UserProgress.from_profile_fields(data.get("points"), data.get("badges")),
        )
