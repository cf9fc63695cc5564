"""Tests for the Gemini and OpenAI batch translation client."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from common.gpt_utils import ModelJSONParsingError
from translator.exceptions import ConfigurationError, ProviderError
from translator.translation_service import (
    FALLBACK_GEMINI_MODELS,
    FALLBACK_OPENAI_MODELS,
    KeyValueTranslator,
    fetch_gemini_models,
    fetch_openai_models,
    validate_api_key,
)


def gemini_reply(text):
    """Build a generateContent response body carrying ``text``."""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_openai_response(content, finish_reason="stop"):
    """Build a chat completion stand-in with one choice."""
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def mock_openai_client():
    """Patch AsyncOpenAI and return the client instance it produces."""
    with patch("translator.translation_service.AsyncOpenAI") as mock_class:
        client = MagicMock()
        client.chat.completions.create = AsyncMock()
        client.models.list = AsyncMock()
        client.close = AsyncMock()
        mock_class.return_value = client
        client.constructor = mock_class
        yield client


@pytest.mark.unit
class TestValidateApiKey:
    """Test API key validation."""

    def test_strips_surrounding_whitespace(self):
        """Test that a pasted key with padding is accepted."""
        assert validate_api_key("  AIzaKey123  ") == "AIzaKey123"

    @pytest.mark.parametrize("api_key", [None, "", "   "])
    def test_rejects_missing_key(self, api_key):
        """Test that a missing key is a configuration error."""
        with pytest.raises(ConfigurationError, match="No API Key found"):
            validate_api_key(api_key)

    def test_rejects_key_with_inner_whitespace(self):
        """Test that text pasted along with the key is rejected."""
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            validate_api_key("sk-abc my key", provider="openai")


@pytest.mark.unit
class TestGeminiTranslation:
    """Test translation through the Gemini REST API."""

    @pytest.mark.asyncio
    async def test_translate_batch_posts_prompt_and_parses_reply(self):
        """Test the request shape and the parsed key to translation map."""
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200, json=gemini_reply('{"a": "Olá", "b": "Mundo"}')
            )

        translator = KeyValueTranslator(transport=httpx.MockTransport(handler))

        result = await translator.translate_batch(
            ["a", "b"],
            ["Hello", "World"],
            "Admin panel",
            "AIzaKey123",
            provider="gemini",
            model="gemini-1.5-flash",
            target_language="Portuguese (Brazil)",
            project_name="Test App",
        )

        assert result == {"a": "Olá", "b": "Mundo"}
        assert captured["url"].endswith("/models/gemini-1.5-flash:generateContent")
        assert captured["headers"]["x-goog-api-key"] == "AIzaKey123"
        assert captured["body"]["generationConfig"] == {
            "responseMimeType": "application/json"
        }
        prompt = captured["body"]["contents"][0]["parts"][0]["text"]
        assert "Portuguese (Brazil)" in prompt
        assert "**Test App**" in prompt
        assert '"Admin panel"' in prompt
        assert '"a": "Hello"' in prompt

    @pytest.mark.asyncio
    async def test_fenced_reply_is_cleaned(self):
        """Test that markdown fences around the JSON are removed."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200, json=gemini_reply('```json\n{"a": "Olá"}\n```')
            )
        )
        translator = KeyValueTranslator(transport=transport)

        result = await translator.translate_batch(["a"], ["Hello"], None, "key")

        assert result == {"a": "Olá"}

    @pytest.mark.asyncio
    async def test_unrequested_and_non_text_values_are_dropped(self):
        """Test that only requested keys with text values are returned."""
        reply = '{"a": "Olá", "b": "", "c": "Extra", "d": 5}'
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=gemini_reply(reply))
        )
        translator = KeyValueTranslator(transport=transport)

        result = await translator.translate_batch(
            ["a", "b", "d"], ["Hello", "World", "Five"], None, "key"
        )

        assert result == {"a": "Olá"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,body,expected",
        [
            (
                429,
                {"error": {"code": 429, "message": "Resource has been exhausted"}},
                "Gemini Error (429): Resource has been exhausted",
            ),
            (
                400,
                {"error": {"code": 400, "message": "API key not valid"}},
                "Gemini Error (400): API key not valid",
            ),
            (500, {}, "Gemini Error (500): Gemini API Error"),
        ],
    )
    async def test_error_response_raises_provider_error(self, status_code, body, expected):
        """Test that the provider error code and message are reported."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(status_code, json=body)
        )
        translator = KeyValueTranslator(transport=transport)

        with pytest.raises(ProviderError) as exc_info:
            await translator.translate_batch(["a"], ["Hello"], None, "key")

        assert str(exc_info.value) == expected
        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_missing_candidates_raises_provider_error(self):
        """Test that a reply without candidates is an error."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"promptFeedback": {}})
        )
        translator = KeyValueTranslator(transport=transport)

        with pytest.raises(ProviderError, match="No candidates"):
            await translator.translate_batch(["a"], ["Hello"], None, "key")

    @pytest.mark.asyncio
    async def test_unparsable_reply_raises_parsing_error(self):
        """Test that a non-JSON reply raises ModelJSONParsingError."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=gemini_reply("Sorry, I can't."))
        )
        translator = KeyValueTranslator(transport=transport)

        with pytest.raises(ModelJSONParsingError):
            await translator.translate_batch(["a"], ["Hello"], None, "key")

    @pytest.mark.asyncio
    async def test_connection_failure_raises_provider_error(self):
        """Test that network errors are wrapped and keep their cause."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        translator = KeyValueTranslator(transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderError) as exc_info:
            await translator.translate_batch(["a"], ["Hello"], None, "key")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.unit
class TestOpenAITranslation:
    """Test translation through the OpenAI Chat Completions API."""

    @pytest.mark.asyncio
    async def test_translate_batch_with_openai(self, mock_openai_client):
        """Test that the chat completion reply is parsed."""
        mock_openai_client.chat.completions.create.return_value = make_openai_response(
            '{"a": "Olá"}'
        )
        translator = KeyValueTranslator(timeout=30)

        result = await translator.translate_batch(
            ["a"], ["Hello"], "ctx", "sk-test", provider="openai", model="gpt-4o"
        )

        assert result == {"a": "Olá"}
        mock_openai_client.constructor.assert_called_once_with(
            api_key="sk-test", timeout=30, max_retries=0
        )
        call_kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o"
        assert [m["role"] for m in call_kwargs["messages"]] == ["system", "user"]
        mock_openai_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_openai_default_model(self, mock_openai_client):
        """Test that the provider default model is used when none is given."""
        mock_openai_client.chat.completions.create.return_value = make_openai_response(
            '{"a": "Olá"}'
        )

        await KeyValueTranslator().translate_batch(
            ["a"], ["Hello"], None, "sk-test", provider="openai"
        )

        call_kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-3.5-turbo"

    @pytest.mark.asyncio
    async def test_openai_status_error_raises_provider_error(self, mock_openai_client):
        """Test that API status errors carry the HTTP code in the message."""
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_openai_client.chat.completions.create.side_effect = (
            openai.AuthenticationError(
                "Incorrect API key provided",
                response=httpx.Response(401, request=request),
                body=None,
            )
        )

        with pytest.raises(ProviderError) as exc_info:
            await KeyValueTranslator().translate_batch(
                ["a"], ["Hello"], None, "sk-test", provider="openai"
            )

        assert str(exc_info.value) == "OpenAI Error (401): Incorrect API key provided"
        assert exc_info.value.status_code == 401
        mock_openai_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_openai_empty_content_raises_provider_error(self, mock_openai_client):
        """Test that an empty completion is reported with its finish reason."""
        mock_openai_client.chat.completions.create.return_value = make_openai_response(
            None, finish_reason="length"
        )

        with pytest.raises(ProviderError, match="finish_reason: length"):
            await KeyValueTranslator().translate_batch(
                ["a"], ["Hello"], None, "sk-test", provider="openai"
            )


@pytest.mark.unit
class TestTranslateBatchValidation:
    """Test argument validation before any request."""

    @pytest.mark.asyncio
    async def test_rejects_unknown_provider(self):
        """Test that only gemini and openai are supported."""
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            await KeyValueTranslator().translate_batch(
                ["a"], ["Hello"], None, "key", provider="claude"
            )

    @pytest.mark.asyncio
    async def test_rejects_mismatched_lengths(self):
        """Test that every key needs a source text."""
        with pytest.raises(ValueError):
            await KeyValueTranslator().translate_batch(["a", "b"], ["Hello"], None, "key")


@pytest.mark.unit
class TestModelListing:
    """Test model discovery."""

    @pytest.mark.asyncio
    async def test_fetch_gemini_models(self):
        """Test that Gemini model names are stripped of their prefix and sorted."""
        body = {
            "models": [
                {"name": "models/gemini-1.5-pro"},
                {"name": "models/embedding-001"},
                {"name": "models/gemini-1.5-flash"},
            ]
        }
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))

        models = await fetch_gemini_models("key", transport=transport)

        assert models == ["gemini-1.5-flash", "gemini-1.5-pro"]

    @pytest.mark.asyncio
    async def test_fetch_gemini_models_falls_back_on_error(self):
        """Test that a failed listing returns the fallback list."""
        transport = httpx.MockTransport(lambda request: httpx.Response(403, json={}))

        models = await fetch_gemini_models("key", transport=transport)

        assert models == FALLBACK_GEMINI_MODELS

    @pytest.mark.asyncio
    async def test_fetch_models_without_key_is_empty(self):
        """Test that nothing is listed without a key."""
        assert await fetch_gemini_models(None) == []
        assert await fetch_openai_models("") == []

    @pytest.mark.asyncio
    async def test_fetch_openai_models(self, mock_openai_client):
        """Test that only GPT models are listed, sorted."""
        page = MagicMock()
        page.data = [MagicMock(id="gpt-4o"), MagicMock(id="whisper-1"), MagicMock(id="gpt-4")]
        mock_openai_client.models.list.return_value = page

        assert await fetch_openai_models("sk-test") == ["gpt-4", "gpt-4o"]

    @pytest.mark.asyncio
    async def test_fetch_openai_models_falls_back_on_error(self, mock_openai_client):
        """Test that an API failure returns the fallback list."""
        request = httpx.Request("GET", "https://api.openai.com/v1/models")
        mock_openai_client.models.list.side_effect = openai.APIConnectionError(
            request=request
        )

        assert await fetch_openai_models("sk-test") == FALLBACK_OPENAI_MODELS
