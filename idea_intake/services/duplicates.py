"""
Duplicate detection for new ideas.

Asks the language model whether a new idea describes the same
functionality as one of the recent active ideas. Only a well-formed
positive answer that names a known candidate counts as a duplicate;
anything else lets the submission through, because a missed duplicate
can be merged by a moderator later while a false positive loses the idea.
"""

import json
import logging
from typing import List, Optional, Sequence

from idea_intake.models.idea import DuplicateVerdict, IdeaSummary
from idea_intake.services.llm import LanguageModel, strip_code_fence

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 500


class DuplicateDetector:
    """Compares a new idea with a window of active ideas via the language model."""

    def __init__(self, language_model: LanguageModel):
        self.language_model = language_model

    def check(
        self,
        new_text: str,
        candidates: Sequence[IdeaSummary],
        timeout: Optional[float] = None,
    ) -> DuplicateVerdict:
        """
        Decide whether `new_text` duplicates one of `candidates`.

        Args:
            new_text: The raw text of the new submission.
            candidates: Recent non-terminal ideas.
            timeout: Seconds the model call may take.

        Returns:
            DuplicateVerdict. An empty candidate list returns "not a
            duplicate" without calling the model.

        Raises:
            LanguageModelError: If the model call itself fails.
        """
        if not candidates:
            return DuplicateVerdict.not_duplicate()

        prompt = self._build_prompt(new_text, candidates)
        response = self.language_model.complete("", prompt, MAX_OUTPUT_TOKENS, timeout=timeout)
        return self.parse_verdict(response, candidates)

    def _build_prompt(self, new_text: str, candidates: Sequence[IdeaSummary]) -> str:
        ideas_list = "\n".join(f"- ID {c.id}: {c.label}" for c in candidates)

        return f"""Check whether the new idea is a duplicate of, or very similar to, one of the existing ideas.

New idea:
"{new_text}"

Existing ideas:
{ideas_list}

Return a JSON object with:
- is_duplicate: true if the new idea means the same as, or is very close to, an existing idea
- similar_idea_id: ID of the similar idea (only if is_duplicate is true)
- reason: a short explanation of why you consider it a duplicate

Treat it as a duplicate only if both ideas describe the same functionality or enhancement.
Do NOT treat it as a duplicate if the ideas are merely in the same area but about different things.

Return ONLY JSON without markdown."""

    @staticmethod
    def parse_verdict(response: str, candidates: Sequence[IdeaSummary]) -> DuplicateVerdict:
        """
        Turn the model's answer into a verdict, degrading to "not a duplicate".
        """
        if not response or not response.strip():
            return DuplicateVerdict.not_duplicate()

        try:
            data = json.loads(strip_code_fence(response))
        except ValueError:
            logger.debug("Unparsable duplicate check response: %.200s", response)
            return DuplicateVerdict.not_duplicate()

        if not isinstance(data, dict) or data.get("is_duplicate") is not True:
            return DuplicateVerdict.not_duplicate()

        similar_id = _parse_idea_id(data.get("similar_idea_id"))
        if similar_id is None:
            logger.debug("Duplicate verdict without usable ID: %r", data)
            return DuplicateVerdict.not_duplicate()

        known_ids: List[int] = [c.id for c in candidates]
        if similar_id not in known_ids:
            logger.debug("Duplicate verdict names unknown idea #%s", similar_id)
            return DuplicateVerdict.not_duplicate()

        return DuplicateVerdict(
            is_duplicate=True,
            similar_id=similar_id,
            reason=str(data.get("reason") or ""),
        )


def _parse_idea_id(value) -> Optional[int]:
    """Accept an integer or a string of digits; bools and floats are not IDs."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        try:
            return int(value.strip())
        except (ValueError, OverflowError):
            return None
    return None
