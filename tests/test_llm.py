"""
Tests for the language model clients.

Tests request payloads, response extraction, and error handling
for the Groq and Anthropic HTTP clients.
"""

import pytest
import requests
from unittest.mock import Mock, patch

from idea_intake.errors import EnrichmentFailed
from idea_intake.services.enricher import Enricher
from idea_intake.services.llm import (
    DEFAULT_REQUEST_TIMEOUT,
    AnthropicLanguageModel,
    GroqLanguageModel,
    LanguageModelError,
    _HTTPLanguageModel,
    create_language_model,
    strip_code_fence,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def groq():
    return GroqLanguageModel(api_key="test_api_key", model="test-model")


@pytest.fixture
def anthropic():
    return AnthropicLanguageModel(api_key="test_api_key", model="claude-test")


@pytest.fixture
def groq_response():
    """Mock successful chat completions response."""
    mock_response = Mock()
    mock_response.status_code = 200
    mock_response.json.return_value = {
        "choices": [{"message": {"content": "  {\"is_duplicate\": false}  "}}],
        "usage": {"total_tokens": 150},
    }
    return mock_response


@pytest.fixture
def anthropic_response():
    """Mock successful Messages API response."""
    mock_response = Mock()
    mock_response.status_code = 200
    mock_response.json.return_value = {
        "content": [
            {"type": "tool_use", "id": "x"},
            {"type": "text", "text": "first"},
            {"type": "text", "text": "second"},
        ],
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }
    return mock_response


@pytest.fixture
def error_response():
    """Mock API error response."""
    mock_response = Mock()
    mock_response.status_code = 401
    mock_response.json.return_value = {"error": {"message": "Invalid API key"}}
    return mock_response


# =============================================================================
# Test GroqLanguageModel
# =============================================================================

class TestGroqLanguageModel:
    """Tests for the Groq client."""

    def test_complete_returns_stripped_content(self, groq, groq_response):
        with patch("idea_intake.services.llm.requests.post", return_value=groq_response):
            assert groq.complete("", "prompt", 500) == '{"is_duplicate": false}'

    def test_request_payload(self, groq, groq_response):
        with patch("idea_intake.services.llm.requests.post", return_value=groq_response) as mock_post:
            groq.complete("system text", "user text", 2000, timeout=12.0)

        args, kwargs = mock_post.call_args
        assert args[0] == GroqLanguageModel.API_URL
        assert kwargs["headers"]["Authorization"] == "Bearer test_api_key"
        assert kwargs["timeout"] == 12.0
        payload = kwargs["json"]
        assert payload["model"] == "test-model"
        assert payload["max_tokens"] == 2000
        assert payload["messages"] == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "user text"},
        ]

    def test_empty_system_is_omitted(self, groq, groq_response):
        with patch("idea_intake.services.llm.requests.post", return_value=groq_response) as mock_post:
            groq.complete("", "user text", 500)

        messages = mock_post.call_args.kwargs["json"]["messages"]
        assert [m["role"] for m in messages] == ["user"]
        assert mock_post.call_args.kwargs["timeout"] == DEFAULT_REQUEST_TIMEOUT

    def test_api_error_raises(self, groq, error_response):
        with patch("idea_intake.services.llm.requests.post", return_value=error_response):
            with pytest.raises(LanguageModelError, match="401.*Invalid API key"):
                groq.complete("", "prompt", 500)

    def test_network_error_raises(self, groq):
        with patch(
            "idea_intake.services.llm.requests.post",
            side_effect=requests.exceptions.ConnectionError("unreachable"),
        ):
            with pytest.raises(LanguageModelError, match="request failed"):
                groq.complete("", "prompt", 500)

    def test_timeout_raises(self, groq):
        with patch("idea_intake.services.llm.requests.post", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(LanguageModelError):
                groq.complete("", "prompt", 500)

    def test_unexpected_shape_raises(self, groq):
        response = Mock(status_code=200)
        response.json.return_value = {"choices": []}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="unexpected response"):
                groq.complete("", "prompt", 500)

    @pytest.mark.parametrize("body", [
        {"error": "rate limited"},
        {"error": None},
        ["rate limited"],
        "rate limited",
    ])
    def test_error_body_of_any_shape_raises_model_error(self, groq, body):
        response = Mock(status_code=429, text="Too Many Requests")
        response.json.return_value = body
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="429"):
                groq.complete("", "prompt", 500)

    def test_string_error_body_used_as_message(self, groq):
        response = Mock(status_code=429, text="Too Many Requests")
        response.json.return_value = {"error": "rate limited"}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="rate limited"):
                groq.complete("", "prompt", 500)

    def test_non_object_success_body_raises(self, groq):
        response = Mock(status_code=200)
        response.json.return_value = ["not", "an", "object"]
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="unexpected response"):
                groq.complete("", "prompt", 500)

    def test_non_object_usage_ignored(self, groq):
        response = Mock(status_code=200)
        response.json.return_value = {"choices": [{"message": {"content": "ok"}}], "usage": 5}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            assert groq.complete("", "prompt", 500) == "ok"

    def test_enricher_sees_enrichment_failed_on_odd_error_body(self, groq):
        """A provider error body of the wrong shape still degrades to EnrichmentFailed."""
        response = Mock(status_code=429, text="Too Many Requests")
        response.json.return_value = {"error": "rate limited"}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(EnrichmentFailed):
                Enricher(groq).enrich("add dark mode toggle", "alice")

    def test_missing_key_fails_without_request(self):
        client = GroqLanguageModel(api_key="", model="test-model")
        with patch("idea_intake.services.llm.requests.post") as mock_post:
            with pytest.raises(LanguageModelError, match="no API key"):
                client.complete("", "prompt", 500)

        mock_post.assert_not_called()
        assert client.is_available() is False


# =============================================================================
# Test AnthropicLanguageModel
# =============================================================================

class TestAnthropicLanguageModel:
    """Tests for the Anthropic client."""

    def test_first_text_block_wins(self, anthropic, anthropic_response):
        with patch("idea_intake.services.llm.requests.post", return_value=anthropic_response):
            assert anthropic.complete("sys", "prompt", 2000) == "first"

    def test_request_headers_and_payload(self, anthropic, anthropic_response):
        with patch("idea_intake.services.llm.requests.post", return_value=anthropic_response) as mock_post:
            anthropic.complete("sys", "prompt", 2000)

        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["x-api-key"] == "test_api_key"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        assert kwargs["json"]["system"] == "sys"
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "prompt"}]

    def test_no_text_block_returns_empty(self, anthropic):
        response = Mock(status_code=200)
        response.json.return_value = {"content": []}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            assert anthropic.complete("", "prompt", 500) == ""

    def test_non_object_blocks_skipped(self, anthropic):
        response = Mock(status_code=200)
        response.json.return_value = {"content": ["text", None, {"type": "text", "text": " hi "}], "usage": []}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            assert anthropic.complete("", "prompt", 500) == "hi"

    @pytest.mark.parametrize("content", ["text", None, {"type": "text"}])
    def test_non_list_content_raises(self, anthropic, content):
        response = Mock(status_code=200)
        response.json.return_value = {"content": content}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="unexpected response"):
                anthropic.complete("", "prompt", 500)

    def test_non_string_text_raises(self, anthropic):
        response = Mock(status_code=200)
        response.json.return_value = {"content": [{"type": "text", "text": 42}]}
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="unexpected response"):
                anthropic.complete("", "prompt", 500)

    def test_server_error_raises(self, anthropic):
        response = Mock(status_code=529, text="overloaded")
        response.json.side_effect = ValueError("no json")
        with patch("idea_intake.services.llm.requests.post", return_value=response):
            with pytest.raises(LanguageModelError, match="529"):
                anthropic.complete("", "prompt", 500)


# =============================================================================
# Test helpers
# =============================================================================

class TestCreateLanguageModel:

    def test_http_client_without_headers_cannot_be_built(self):
        class NoHeaders(_HTTPLanguageModel):
            def complete(self, system, prompt, max_tokens, timeout=None):
                return ""

        with pytest.raises(TypeError, match="_headers"):
            NoHeaders("k", "m")

    def test_known_providers(self):
        assert isinstance(create_language_model("groq", "k", "m"), GroqLanguageModel)
        assert isinstance(create_language_model("anthropic", "k", "m"), AnthropicLanguageModel)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_language_model("openai", "k", "m")


class TestStripCodeFence:

    @pytest.mark.parametrize("text,expected", [
        ('{"a": 1}', '{"a": 1}'),
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  \n{"a": 1}\n  ', '{"a": 1}'),
    ])
    def test_strip(self, text, expected):
        assert strip_code_fence(text) == expected
