"""
Unit Tests for LearningContentService
=====================================

Test Coverage
-------------
- Roadmap structure hydration (ids, fresh progress flags)
- Resource link resolution and the degrade-to-empty rule
- Quiz question filtering
- Feedback fallback text
- Tutor chat, community threads and analytics mapping
"""

import json

import pytest

from skillforge.core.ai.generator import ChatTurn
from skillforge.core.exceptions import FatalGenerationError
from skillforge.core.video.youtube import VideoResult
from skillforge.modules.learning.service import LearningContentService
from skillforge.modules.shared.constants import DEFAULT_FEEDBACK
from skillforge.modules.shared.exceptions import ValidationError


@pytest.fixture
def learning_factory(make_client, fake_video, event_bus):
    def factory(*outcomes):
        client, generator = make_client(*outcomes)
        return LearningContentService(client, fake_video, event_bus), generator

    return factory


ROADMAP_JSON = json.dumps(
    [
        {
            "title": "Basics",
            "description": "Syntax and tooling",
            "subtopics": [{"title": "Cargo"}, {"title": "Ownership"}],
        },
        {"title": "Traits", "description": "Abstraction", "subtopics": [{"title": "Generics"}]},
    ]
)


@pytest.mark.unit
class TestRoadmapStructure:
    async def test_hydrates_ids_and_flags(self, learning_factory):
        # Arrange
        learning, generator = learning_factory(ROADMAP_JSON)

        # Act
        modules = await learning.generate_roadmap_structure("Rust")

        # Assert
        assert [m.title for m in modules] == ["Basics", "Traits"]
        assert modules[0].id.startswith("mod-") and modules[0].id.endswith("-0")
        assert modules[0].subtopics[1].id.endswith("-0-1")
        assert all(not s.is_started and not s.is_completed for m in modules for s in m.subtopics)
        assert not any(m.quiz_completed for m in modules)
        assert "Rust" in generator.calls[0]["prompt"]

    async def test_blank_topic_is_rejected_before_generation(self, learning_factory):
        # Arrange
        learning, generator = learning_factory(ROADMAP_JSON)

        # Act & Assert
        with pytest.raises(ValidationError):
            await learning.generate_roadmap_structure("   ")
        assert generator.calls == []

    async def test_fatal_failure_propagates(self, learning_factory):
        # Arrange
        learning, _ = learning_factory(ValueError("API key not valid"))

        # Act & Assert
        with pytest.raises(FatalGenerationError):
            await learning.generate_roadmap_structure("Rust")


@pytest.mark.unit
class TestResources:
    SUGGESTIONS = json.dumps(
        [
            {"title": "Ownership talk", "search_query": "rust ownership", "type": "video"},
            {"title": "The Book", "search_query": "rust book", "type": "doc"},
            {"title": "Blog post", "search_query": "rust borrow checker", "type": "article"},
        ]
    )

    async def test_video_uses_lookup_result(self, learning_factory, fake_video):
        # Arrange
        fake_video.result = VideoResult(title="Rust Ownership", video_id="abc123")
        learning, _ = learning_factory(self.SUGGESTIONS)

        # Act
        resources = await learning.fetch_resources_for_subtopic("Rust", "Ownership")

        # Assert
        assert resources[0].url == "https://www.youtube.com/watch?v=abc123"
        assert resources[0].title == "Rust Ownership"
        assert fake_video.queries == ["rust ownership"]

    async def test_links_fall_back_to_search_urls(self, learning_factory):
        # Arrange
        learning, _ = learning_factory(self.SUGGESTIONS)

        # Act
        resources = await learning.fetch_resources_for_subtopic("Rust", "Ownership")

        # Assert
        assert [r.type for r in resources] == ["video", "doc", "article"]
        assert resources[0].url == "https://www.youtube.com/results?search_query=rust+ownership"
        assert resources[0].title == "Ownership talk"
        assert resources[1].url == "https://duckduckgo.com/?q=!ducky+rust+book+documentation"
        assert resources[2].url == "https://duckduckgo.com/?q=!ducky+rust+borrow+checker"

    async def test_blank_query_uses_subtopic_and_topic(self, learning_factory, fake_video):
        # Arrange
        learning, _ = learning_factory(
            json.dumps([{"title": "Intro", "search_query": "", "type": "video"}])
        )

        # Act
        await learning.fetch_resources_for_subtopic("Rust", "Ownership")

        # Assert
        assert fake_video.queries == ["Ownership Rust tutorial"]

    async def test_generation_failure_yields_empty_list(self, learning_factory):
        # Arrange
        learning, _ = learning_factory(ValueError("400 INVALID_ARGUMENT"))

        # Act
        resources = await learning.fetch_resources_for_subtopic("Rust", "Ownership")

        # Assert
        assert resources == []

    async def test_malformed_response_yields_empty_list(self, learning_factory):
        learning, _ = learning_factory('[{"title": "x", "type": "podcast"}]')
        assert await learning.fetch_resources_for_subtopic("Rust", "Ownership") == []


@pytest.mark.unit
class TestQuizAndFlashcards:
    async def test_drops_questions_with_answer_outside_options(self, learning_factory):
        # Arrange
        learning, _ = learning_factory(
            json.dumps(
                [
                    {
                        "question": "Which keyword moves a closure?",
                        "options": ["move", "ref", "mut", "box"],
                        "correct_answer": "move",
                        "explanation": "move transfers ownership",
                    },
                    {
                        "question": "Broken",
                        "options": ["a", "b"],
                        "correct_answer": "c",
                        "explanation": "",
                    },
                ]
            )
        )

        # Act
        questions = await learning.generate_quiz("Closures", ["Fn traits", "Capture"])

        # Assert
        assert len(questions) == 1
        assert questions[0].options == ("move", "ref", "mut", "box")
        assert questions[0].is_correct("move")

    async def test_flashcards_map_front_and_back(self, learning_factory):
        # Arrange
        learning, _ = learning_factory(json.dumps([{"front": "Q", "back": "A"}]))

        # Act
        cards = await learning.generate_flashcards("Rust", "Ownership")

        # Assert
        assert [(c.front, c.back) for c in cards] == [("Q", "A")]


@pytest.mark.unit
class TestFeedbackAndChat:
    async def test_blank_feedback_uses_default(self, learning_factory):
        learning, _ = learning_factory("  \n ")
        assert await learning.generate_feedback("Rust", [{"module": "m"}]) == DEFAULT_FEEDBACK

    async def test_feedback_is_stripped(self, learning_factory):
        learning, _ = learning_factory("  Great pace on traits.\n")
        assert await learning.generate_feedback("Rust", []) == "Great pace on traits."

    async def test_chat_sets_tutor_instruction(self, learning_factory):
        # Arrange
        learning, generator = learning_factory("Ownership means one owner.")

        # Act
        reply = await learning.chat_with_assistant(
            [ChatTurn("user", "hi")], "explain ownership", "Rust"
        )

        # Assert
        assert reply == "Ownership means one owner."
        assert "Rust" in generator.calls[0]["system_instruction"]

    async def test_chat_rejects_blank_message(self, learning_factory):
        learning, _ = learning_factory("unused")
        with pytest.raises(ValidationError):
            await learning.chat_with_assistant([], " ", "Rust")


@pytest.mark.unit
class TestCommunityAndAnalytics:
    async def test_threads_keep_nested_replies(self, learning_factory):
        # Arrange
        reply = {
            "id": "r1",
            "author": "Bo",
            "avatar": "🦀",
            "content": "Same here",
            "is_ai_generated": True,
        }
        learning, _ = learning_factory(
            json.dumps(
                [
                    {
                        "id": "p1",
                        "author": "Cy",
                        "avatar": "🚀",
                        "content": "Lifetimes are hard",
                        "likes": 4,
                        "replies": [reply],
                        "is_ai_generated": True,
                    }
                ]
            )
        )

        # Act
        posts = await learning.generate_community_threads("Rust")

        # Assert
        assert posts[0].likes == 4
        assert posts[0].replies[0].author == "Bo"
        assert posts[0].to_document()["replies"][0]["id"] == "r1"

    async def test_analysis_maps_report(self, learning_factory):
        # Arrange
        learning, _ = learning_factory(
            json.dumps(
                {
                    "struggle_areas": ["Lifetimes"],
                    "strong_areas": ["Cargo"],
                    "recommendations": "Practice borrowing",
                    "predicted_challenges": "Async",
                }
            )
        )

        # Act
        report = await learning.generate_deep_analysis("Rust", [])

        # Assert
        assert report.struggle_areas == ("Lifetimes",)
        assert report.to_document()["predicted_challenges"] == "Async"
