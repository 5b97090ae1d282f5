"""Prompt builders for learning content generation."""

from __future__ import annotations

import json
from typing import Any, Sequence

from skillforge.modules.shared.constants import (
    COMMUNITY_THREAD_COUNT,
    FLASHCARD_COUNT,
    QUIZ_OPTION_COUNT,
    QUIZ_QUESTION_COUNT,
    RESOURCE_SUGGESTION_COUNT,
)


def roadmap_structure(topic: str) -> str:
    return (
        f'Create a comprehensive learning roadmap for the subject: "{topic}".\n'
        "Break it down into logical modules. Each module should have a list of "
        "specific subtopics.\n"
        "Keep it practical and structured for a beginner to intermediate learner."
    )


def resource_suggestions(topic: str, subtopic: str) -> str:
    return (
        f"Suggest {RESOURCE_SUGGESTION_COUNT} different types of learning resources for "
        f'"{subtopic}" in the context of "{topic}".\n\n'
        "For each resource, provide:\n"
        "- A descriptive title that describes what the learner will find\n"
        "- A search query that would find this resource\n"
        '- The type: "video" for video tutorials, "article" for written guides, '
        '"doc" for documentation\n\n'
        "Make sure to include at least one video resource."
    )


def module_quiz(module_title: str, subtopics: Sequence[str]) -> str:
    return (
        f"Generate a {QUIZ_QUESTION_COUNT}-question multiple choice quiz to test "
        f'knowledge on the module: "{module_title}".\n'
        f"Cover these subtopics: {', '.join(subtopics)}.\n"
        f"Provide {QUIZ_OPTION_COUNT} options for each question. The correct answer "
        "must be the exact text of one of the options."
    )


def performance_feedback(topic: str, performance: Sequence[dict[str, Any]]) -> str:
    return (
        f'The user is studying "{topic}".\n'
        "Here is the detailed performance data for the modules they have completed:\n"
        f"{json.dumps(list(performance), indent=2)}\n\n"
        "Based on this data, provide a comprehensive and personalized performance review.\n"
        "1. Highlight specific modules where they performed well (high quiz scores).\n"
        "2. Identify specific areas where they might be struggling. Look for low quiz "
        "scores or subtopics where they spent significantly more time compared to "
        "others.\n"
        "3. Provide specific, actionable advice based on their struggle areas and the "
        "nature of the topic.\n"
        "4. If they are doing well everywhere, challenge them to go deeper into "
        "advanced concepts.\n\n"
        "Keep the feedback personal, referencing specific module titles and subtopics. "
        "Output plain text."
    )


def tutor_instruction(context: str) -> str:
    return (
        f"You are a helpful tutor assistant for a course on: {context}. "
        "Keep answers brief and helpful."
    )


def community_threads(topic: str) -> str:
    return (
        f"Generate {COMMUNITY_THREAD_COUNT} realistic forum discussion starter posts for "
        f'students learning "{topic}".\n'
        "Each post should have a persona (name, emoji avatar) and a question or insight "
        "a beginner might have.\n"
        'Also include 1 helpful reply for each post from another "student".'
    )


def deep_analysis(topic: str, study_data: Sequence[dict[str, Any]]) -> str:
    return (
        f'Analyze this study data for the topic "{topic}".\n'
        f"Data: {json.dumps(list(study_data))}.\n"
        "Identify specific struggle areas (took long time) and strong areas.\n"
        "Predict future challenges based on the topic nature.\n"
        "Suggest recommendations."
    )


def flashcards(topic: str, subtopic: str) -> str:
    return (
        f'Create {FLASHCARD_COUNT} study flashcards for the subtopic "{subtopic}" within '
        f'the subject "{topic}".\n'
        'Each card has a "front" (question, term, or code snippet) and a "back" '
        "(answer, definition, or explanation).\n"
        "Keep them concise and focused on key concepts."
    )
