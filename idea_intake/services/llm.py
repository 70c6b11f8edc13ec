"""
Language model clients.

The intake services build their own prompts and parse their own
responses; a LanguageModel only turns (system, prompt) into text.
Two HTTP backends are provided: Groq's OpenAI-compatible chat
completions API and Anthropic's Messages API.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

logger = logging.getLogger(__name__)

# Used when the caller does not pass its own deadline
DEFAULT_REQUEST_TIMEOUT = 60.0


class LanguageModelError(Exception):
    """Raised when a completion request fails."""


class LanguageModel(ABC):
    """Abstract text completion collaborator."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier used for requests."""
        pass

    @abstractmethod
    def complete(
        self,
        system: str,
        prompt: str,
        max_tokens: int,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Run one completion.

        Args:
            system: System instructions (may be empty).
            prompt: The user message.
            max_tokens: Upper bound on output size.
            timeout: Seconds the call may take; None uses the client default.

        Returns:
            The response text (possibly empty).

        Raises:
            LanguageModelError: On transport errors or non-200 responses.
        """
        pass

    def is_available(self) -> bool:
        """Check if the client is configured well enough to make calls."""
        return True


class _HTTPLanguageModel(LanguageModel):
    """Shared plumbing for JSON-over-HTTP completion APIs."""

    API_URL = ""

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def _headers(self) -> dict:
        """Provider-specific request headers."""

    def _post(self, payload: dict, timeout: Optional[float]) -> dict:
        if not self.is_available():
            raise LanguageModelError(f"{type(self).__name__} has no API key configured")

        try:
            response = requests.post(
                self.API_URL,
                headers=self._headers(),
                json=payload,
                timeout=timeout if timeout is not None else DEFAULT_REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise LanguageModelError(f"request failed: {e}") from e

        if response.status_code != 200:
            raise LanguageModelError(f"API error ({response.status_code}): {_error_message(response)}")

        try:
            data = response.json()
        except ValueError as e:
            raise LanguageModelError(f"invalid JSON from API: {e}") from e
        if not isinstance(data, dict):
            raise LanguageModelError(f"unexpected response shape: {type(data).__name__}")
        return data


class GroqLanguageModel(_HTTPLanguageModel):
    """Completions through Groq's OpenAI-compatible chat API."""

    API_URL = "https://api.groq.com/openai/v1/chat/completions"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def complete(self, system: str, prompt: str, max_tokens: int, timeout: Optional[float] = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": 0.3,  # Lower for more focused responses
        }

        data = self._post(payload, timeout)
        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise LanguageModelError(f"unexpected response shape: {e}") from e

        tokens = _usage(data).get("total_tokens", 0)
        logger.debug("Groq completion: model=%s tokens=%s", self.model, tokens)
        return text.strip()


class AnthropicLanguageModel(_HTTPLanguageModel):
    """Completions through Anthropic's Messages API."""

    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    def _headers(self) -> dict:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    def complete(self, system: str, prompt: str, max_tokens: int, timeout: Optional[float] = None) -> str:
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        data = self._post(payload, timeout)

        # First text block wins
        content = data.get("content")
        if not isinstance(content, list):
            raise LanguageModelError(f"unexpected response shape: content is {type(content).__name__}")
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                usage = _usage(data)
                logger.debug(
                    "Anthropic completion: model=%s in=%s out=%s",
                    self.model,
                    usage.get("input_tokens", 0),
                    usage.get("output_tokens", 0),
                )
                text = block.get("text") or ""
                if not isinstance(text, str):
                    raise LanguageModelError("unexpected response shape: text block is not a string")
                return text.strip()
        return ""


def _error_message(response) -> str:
    """Best-effort error text from a failed API response."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    return response.text


def _usage(data: dict) -> dict:
    usage = data.get("usage")
    return usage if isinstance(usage, dict) else {}


def create_language_model(provider: str, api_key: str, model: str) -> LanguageModel:
    """
    Build a client for the configured provider.

    Raises:
        ValueError: If the provider is unknown.
    """
    if provider == "groq":
        return GroqLanguageModel(api_key=api_key, model=model)
    if provider == "anthropic":
        return AnthropicLanguageModel(api_key=api_key, model=model)
    raise ValueError(f"unknown LLM provider {provider!r}")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` block that models like to add."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()
