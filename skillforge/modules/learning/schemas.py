"""
Wire schemas for structured generation.

Passed to the backend as ``response_schema`` and used to validate the JSON
it returns. The backend rejects schemas with default values, so every field
here is required.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class SubtopicOutline(BaseModel):
    title: str


class ModuleOutline(BaseModel):
    title: str
    description: str
    subtopics: list[SubtopicOutline]


class ResourceSuggestion(BaseModel):
    title: str
    search_query: str
    type: Literal["video", "article", "doc"]


class QuizQuestionSchema(BaseModel):
    question: str
    options: list[str]
    correct_answer: str
    explanation: str


class FlashcardSchema(BaseModel):
    front: str
    back: str


class ForumReplySchema(BaseModel):
    id: str
    author: str
    avatar: str
    content: str
    is_ai_generated: bool


class ForumPostSchema(BaseModel):
    id: str
    author: str
    avatar: str
    content: str
    likes: int
    replies: list[ForumReplySchema]
    is_ai_generated: bool


class AnalyticsSchema(BaseModel):
    struggle_areas: list[str]
    strong_areas: list[str]
    recommendations: str
    predicted_challenges: str
