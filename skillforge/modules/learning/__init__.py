"""Generated study content: roadmaps, resources, quizzes, flashcards and analytics."""

from skillforge.modules.learning.service import LearningContentService

__all__ = ["LearningContentService"]
