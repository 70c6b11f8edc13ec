"""
Chat message rendering.

Replies are written in Telegram MarkdownV2. Every piece of user or model
text passes through escape_markdown; strip_markdown produces the plain
text used when the platform rejects the markup.
"""

from typing import Tuple

from idea_intake.models.idea import EnrichedPayload
from idea_intake.pipeline import IntakeOutcome, IntakeResult

# Backslash first so escapes added later are not doubled
MARKDOWN_SPECIAL_CHARS = "\\_*[]()~`>#+-=|{}.!"

HELP_TEXT = (
    "🤖 *Idea Bot*\n\n"
    "Collects feature ideas and analyzes them with AI\\.\n\n"
    "*Commands:*\n"
    "/idea <text> \\- Submit a new idea\n"
    "/help \\- Show this help\n\n"
    "*Example:*\n"
    "`/idea Add Slack integration for build notifications`\n\n"
    "Your idea will be analyzed and saved for review\\."
)

THINKING_TEXT = "🤔 Analyzing your idea..."
USAGE_TEXT = (
    "❌ Please add the idea text after the command.\n\n"
    "Example: /idea add a dark theme to the console"
)
TOO_SHORT_TEXT = "❌ The idea is too short. Please describe it in more detail (at least 10 characters)."
TOO_LONG_TEXT = "❌ The idea is too long (at most 2000 characters)."
RATE_LIMITED_TEXT = "⚠️ Too many ideas in the last hour. Please try again later."
FAILED_TEXT = "❌ Something went wrong while saving your idea. Please try again later."


def escape_markdown(text: str) -> str:
    """Escape MarkdownV2 special characters."""
    for char in MARKDOWN_SPECIAL_CHARS:
        text = text.replace(char, "\\" + char)
    return text


def strip_markdown(text: str) -> str:
    """Remove escapes and emphasis markers for a plain-text fallback."""
    for char in ("\\", "*", "_", "`"):
        text = text.replace(char, "")
    return text


def idea_url(base_url: str, idea_id: int) -> str:
    return f"{base_url.rstrip('/')}/api/ideas/{idea_id}"


def _bullets(items) -> str:
    return "".join(f"• {escape_markdown(item)}\n" for item in items)


def format_enriched(enriched: EnrichedPayload) -> str:
    """Render an enrichment payload as a MarkdownV2 card."""
    lines = [
        f"✨ *{escape_markdown(enriched.title)}*\n\n",
        f"📝 {escape_markdown(enriched.summary)}\n\n",
        f"📂 Category: `{enriched.category.value}`\n",
        f"⚡ Priority: `{enriched.priority.value}`\n",
        f"📊 Complexity: `{enriched.complexity.value}`\n",
    ]

    if enriched.affected_components:
        components = ", ".join(f"`{escape_markdown(c)}`" for c in enriched.affected_components)
        lines.append(f"📁 Components: {components}\n")

    lines.append(f"\n👤 *User Story:*\n{escape_markdown(enriched.user_story)}\n")

    if enriched.acceptance_criteria:
        lines.append("\n✅ *Acceptance Criteria:*\n")
        lines.append(_bullets(enriched.acceptance_criteria))

    if enriched.technical_notes:
        lines.append(f"\n🔧 *Technical Notes:*\n{escape_markdown(enriched.technical_notes)}\n")

    if enriched.potential_risks:
        lines.append("\n⚠️ *Risks:*\n")
        lines.append(_bullets(enriched.potential_risks))

    return "".join(lines)


def format_outcome(result: IntakeResult, text: str, base_url: str) -> Tuple[str, bool]:
    """
    Render the reply for a finished submission.

    Args:
        result: Outcome from IntakePipeline.submit.
        text: The submitted idea text.
        base_url: Public URL of the moderation UI, used for idea links.

    Returns:
        Tuple of (message, is_markdown).
    """
    outcome = result.outcome

    if outcome is IntakeOutcome.DUPLICATE:
        url = escape_markdown(idea_url(base_url, result.similar_id))
        message = (
            "🔄 *A similar idea already exists\\!*\n\n"
            f"📝 {escape_markdown(result.reason)}\n\n"
            f"👉 [Idea \\#{result.similar_id}]({url})"
        )
        return message, True

    if outcome is IntakeOutcome.RATE_LIMITED:
        return RATE_LIMITED_TEXT, False

    if outcome is IntakeOutcome.FAILED:
        return FAILED_TEXT, False

    url = escape_markdown(idea_url(base_url, result.record.id))
    if outcome is IntakeOutcome.ENRICHED:
        message = format_enriched(result.enriched)
        message += f"\n\n💾 [Idea \\#{result.record.id}]({url}) saved"
        return message, True

    message = (
        f"💾 [Idea \\#{result.record.id}]({url}) saved\\!\n\n"
        f"📝 {escape_markdown(text)}\n\n"
        "_\\(Automatic analysis unavailable\\)_"
    )
    return message, True
