"""
Services module.

Contains the language model integration and the intake services built on it.
"""

from idea_intake.services.duplicates import DuplicateDetector
from idea_intake.services.enricher import DEFAULT_SYSTEM_PROMPT, Enricher, load_system_prompt
from idea_intake.services.llm import (
    AnthropicLanguageModel,
    GroqLanguageModel,
    LanguageModel,
    LanguageModelError,
    create_language_model,
)
from idea_intake.services.rate_limiter import RateLimiter, TokenBucket

__all__ = [
    "AnthropicLanguageModel",
    "DEFAULT_SYSTEM_PROMPT",
    "DuplicateDetector",
    "Enricher",
    "GroqLanguageModel",
    "LanguageModel",
    "LanguageModelError",
    "RateLimiter",
    "TokenBucket",
    "create_language_model",
    "load_system_prompt",
]
