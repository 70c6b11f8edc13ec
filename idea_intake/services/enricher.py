"""
Idea enrichment service.

Turns a raw idea into a structured EnrichedPayload with one language
model call. Unlike duplicate detection, any failure here is reported to
the caller as EnrichmentFailed; the caller decides whether the idea is
kept without enrichment.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from idea_intake.errors import EnrichmentFailed
from idea_intake.models.idea import EnrichedPayload
from idea_intake.services.llm import LanguageModel, LanguageModelError, strip_code_fence

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 2000

DEFAULT_SYSTEM_PROMPT = """You are an AI assistant specialized in analyzing feature ideas for software projects.

## Your Task

Analyze the raw idea submitted by a team member and provide a structured, enriched version that can be used for planning and prioritization.

Guidelines:
- Be constructive and helpful
- If the idea is vague, make reasonable assumptions
- Provide actionable acceptance criteria
- Consider technical implications and potential risks
- Suggest which components might be affected

Always respond in the same language as the original idea.
Return ONLY valid JSON without any markdown formatting or code blocks."""

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "Short idea title (up to 100 characters)"},
        "summary": {"type": "string", "description": "Brief description in 1-2 sentences"},
        "detailed_description": {"type": "string", "description": "Detailed description of the functionality"},
        "category": {
            "type": "string",
            "enum": ["feature", "improvement", "bug", "integration", "other"],
            "description": "feature (new feature), improvement (enhancement), bug (bug fix), "
                           "integration (external service integration), other",
        },
        "priority": {
            "type": "string",
            "enum": ["low", "medium", "high", "critical"],
            "description": "Priority based on potential value for users",
        },
        "complexity": {
            "type": "string",
            "enum": ["trivial", "small", "medium", "large", "epic"],
            "description": "trivial (< 1 hour), small (1-4 hours), medium (1-3 days), "
                           "large (1-2 weeks), epic (> 2 weeks)",
        },
        "affected_components": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Which components/modules this idea affects",
        },
        "user_story": {
            "type": "string",
            "description": "User story in format: As a [role], I want [action], so that [goal]",
        },
        "acceptance_criteria": {
            "type": "array",
            "items": {"type": "string"},
            "description": "What should work to consider the task complete",
        },
        "technical_notes": {"type": "string", "description": "Technical notes and implementation recommendations"},
        "related_features": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Related existing features to integrate with",
        },
        "potential_risks": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Potential risks and implementation challenges",
        },
    },
    "required": list(EnrichedPayload.REQUIRED_FIELDS),
}


def load_system_prompt(path: Optional[str]) -> str:
    """
    Read an operator-supplied instruction template.

    Falls back to DEFAULT_SYSTEM_PROMPT when no path is given or the file
    cannot be read.
    """
    if not path:
        return DEFAULT_SYSTEM_PROMPT
    try:
        prompt = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to load system prompt from %s: %s, using default", path, e)
        return DEFAULT_SYSTEM_PROMPT
    logger.info("Loaded custom system prompt from %s", path)
    return prompt


class Enricher:
    """
    Produces EnrichedPayloads from raw idea text.

    Args:
        language_model: Completion backend.
        system_prompt: Instruction template; the response schema is appended.
    """

    def __init__(self, language_model: LanguageModel, system_prompt: str = DEFAULT_SYSTEM_PROMPT):
        self.language_model = language_model
        self.system_prompt = system_prompt

    @property
    def system_instructions(self) -> str:
        schema = json.dumps(RESPONSE_SCHEMA, indent=2)
        return f"{self.system_prompt}\n\nExpected JSON schema:\n{schema}"

    def build_prompt(self, raw_text: str, display_name: str) -> str:
        return f"""User @{display_name} submitted an idea:

"{raw_text}"

Analyze this idea and return a structured JSON according to the schema.
Do not use markdown formatting, return only clean JSON."""

    def enrich(self, raw_text: str, display_name: str, timeout: Optional[float] = None) -> EnrichedPayload:
        """
        Analyze an idea.

        Args:
            raw_text: The idea as submitted.
            display_name: How to refer to the submitter in the prompt.
            timeout: Seconds the model call may take.

        Returns:
            The decoded EnrichedPayload.

        Raises:
            EnrichmentFailed: On model errors, empty responses or responses
                that do not decode into a valid payload.
        """
        try:
            response = self.language_model.complete(
                self.system_instructions,
                self.build_prompt(raw_text, display_name),
                MAX_OUTPUT_TOKENS,
                timeout=timeout,
            )
        except LanguageModelError as e:
            raise EnrichmentFailed(f"language model error: {e}") from e

        if not response or not response.strip():
            raise EnrichmentFailed("empty response from language model")

        try:
            return EnrichedPayload.from_json(strip_code_fence(response))
        except ValueError as e:
            raise EnrichmentFailed(f"failed to decode enrichment: {e}") from e
