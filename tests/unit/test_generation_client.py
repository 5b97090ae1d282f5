"""
Unit Tests for GenerationClient and the Gemini adapter.

Test Coverage
-------------
- Structured decoding into pydantic schemas
- Empty and malformed responses
- Retry and fallback applied to structured calls
- Chat turns and system instructions
- Gemini request construction and eager settings validation
"""

import pytest
from pydantic import BaseModel

from skillforge.core.ai.generator import ChatTurn, GeminiSettings, GeminiTextGenerator
from skillforge.core.exceptions import (
    FatalGenerationError,
    MissingConfigurationError,
    ConfigurationError,
)


class Item(BaseModel):
    name: str
    size: int


# ============================================================================
# GENERATION CLIENT
# ============================================================================


@pytest.mark.unit
class TestGenerateStructured:
    async def test_decodes_list_schema(self, make_client):
        # Arrange
        client, generator = make_client('[{"name": "a", "size": 1}, {"name": "b", "size": 2}]')

        # Act
        items = await client.generate_structured("prompt", list[Item], operation_name="test")

        # Assert
        assert items == [Item(name="a", size=1), Item(name="b", size=2)]
        assert generator.calls[0]["schema"] == list[Item]

    async def test_empty_response_is_empty_list(self, make_client):
        # Arrange
        client, _ = make_client("   ")

        # Act
        items = await client.generate_structured("prompt", list[Item], operation_name="test")

        # Assert
        assert items == []

    async def test_empty_response_for_object_schema_is_fatal(self, make_client):
        # Arrange
        client, generator = make_client("")

        # Act & Assert
        with pytest.raises(FatalGenerationError):
            await client.generate_structured("prompt", Item, operation_name="test")
        assert len(generator.calls) == 1

    async def test_malformed_json_is_fatal_and_not_retried(self, make_client, recording_sleep):
        # Arrange
        client, generator = make_client('[{"name": "a"}]', '[{"name": "a", "size": 1}]')

        # Act & Assert
        with pytest.raises(FatalGenerationError) as exc_info:
            await client.generate_structured("prompt", list[Item], operation_name="test")
        assert len(generator.calls) == 1
        assert recording_sleep.delays == []
        assert exc_info.value.original_error is not None

    async def test_transient_failure_falls_back_then_decodes(self, make_client):
        # Arrange
        client, generator = make_client(
            RuntimeError("503 overloaded"),
            RuntimeError("503 overloaded"),
            RuntimeError("503 overloaded"),
            '{"name": "x", "size": 3}',
        )

        # Act
        item = await client.generate_structured("prompt", Item, operation_name="test")

        # Assert
        assert item == Item(name="x", size=3)
        assert generator.models_called == ["model-a"] * 3 + ["model-b"]
        assert client.invoker.selector.current_model == "model-b"


@pytest.mark.unit
class TestTextAndChat:
    async def test_generate_text_passes_system_instruction(self, make_client):
        # Arrange
        client, generator = make_client("hello")

        # Act
        text = await client.generate_text("prompt", operation_name="test", system_instruction="be brief")

        # Assert
        assert text == "hello"
        assert generator.calls[0]["system_instruction"] == "be brief"
        assert generator.calls[0]["schema"] is None

    async def test_chat_forwards_history(self, make_client):
        # Arrange
        client, generator = make_client("answer")
        history = [ChatTurn("user", "hi"), ChatTurn("model", "hello")]

        # Act
        reply = await client.chat(history, "what is a closure?", system_instruction="tutor")

        # Assert
        assert reply == "answer"
        call = generator.calls[0]
        assert call["kind"] == "chat"
        assert call["history"] == history
        assert call["message"] == "what is a closure?"

    def test_chat_turn_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            ChatTurn("assistant", "hi")


# ============================================================================
# GEMINI ADAPTER
# ============================================================================


@pytest.mark.unit
class TestGeminiSettings:
    def test_missing_api_key_fails_at_construction(self):
        with pytest.raises(MissingConfigurationError):
            GeminiSettings(api_key="  ")

    def test_empty_model_list_fails_at_construction(self):
        with pytest.raises(ConfigurationError):
            GeminiSettings(api_key="key", models=())


@pytest.mark.unit
class TestGeminiTextGenerator:
    def _client(self, mocker, text):
        client = mocker.MagicMock()
        response = mocker.MagicMock()
        response.text = text
        client.aio.models.generate_content = mocker.AsyncMock(return_value=response)
        return client

    async def test_structured_request_sets_json_mime_type(self, mocker):
        # Arrange
        client = self._client(mocker, "[]")
        generator = GeminiTextGenerator(GeminiSettings(api_key="key"), client=client)

        # Act
        text = await generator.generate("gemini-x", "prompt", schema=list[Item])

        # Assert
        assert text == "[]"
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-x"
        assert kwargs["contents"] == "prompt"
        assert kwargs["config"].response_mime_type == "application/json"

    async def test_plain_request_has_no_config(self, mocker):
        # Arrange
        client = self._client(mocker, None)
        generator = GeminiTextGenerator(GeminiSettings(api_key="key"), client=client)

        # Act
        text = await generator.generate("gemini-x", "prompt")

        # Assert
        assert text == ""
        assert client.aio.models.generate_content.await_args.kwargs["config"] is None

    async def test_chat_builds_history_contents(self, mocker):
        # Arrange
        client = mocker.MagicMock()
        session = mocker.MagicMock()
        session.send_message = mocker.AsyncMock(return_value=mocker.MagicMock(text="reply"))
        client.aio.chats.create = mocker.MagicMock(return_value=session)
        generator = GeminiTextGenerator(GeminiSettings(api_key="key"), client=client)

        # Act
        reply = await generator.chat(
            "gemini-x", [ChatTurn("user", "hi")], "next", system_instruction="tutor"
        )

        # Assert
        assert reply == "reply"
        kwargs = client.aio.chats.create.call_args.kwargs
        assert kwargs["model"] == "gemini-x"
        assert [c.role for c in kwargs["history"]] == ["user"]
        assert kwargs["history"][0].parts[0].text == "hi"
        session.send_message.assert_awaited_once_with("next")
