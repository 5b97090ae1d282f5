"""Generated community threads and study analytics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ForumPost:
    id: str
    author: str
    avatar: str
    content: str
    likes: int = 0
    replies: List[ForumPost] = field(default_factory=list)
    is_ai_generated: bool = True

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "avatar": self.avatar,
            "content": self.content,
            "likes": self.likes,
            "replies": [r.to_document() for r in self.replies],
            "is_ai_generated": self.is_ai_generated,
        }


@dataclass(frozen=True)
class AnalyticsReport:
    struggle_areas: tuple[str, ...] = ()
    strong_areas: tuple[str, ...] = ()
    recommendations: str = ""
    predicted_challenges: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {
            "struggle_areas": list(self.struggle_areas),
            "strong_areas": list(self.strong_areas),
            "recommendations": self.recommendations,
            "predicted_challenges": self.predicted_challenges,
        }
