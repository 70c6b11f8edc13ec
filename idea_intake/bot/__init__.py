"""
Bot module.

Chat front end: command handling, reply rendering and the transport seam.
"""

from idea_intake.bot.formatting import escape_markdown, format_enriched, format_outcome, strip_markdown
from idea_intake.bot.handler import IdeaBot, build_bot
from idea_intake.bot.transport import (
    ChatTransport,
    ConsoleTransport,
    IncomingMessage,
    SentMessage,
    TransportError,
)

__all__ = [
    "ChatTransport",
    "ConsoleTransport",
    "IdeaBot",
    "IncomingMessage",
    "SentMessage",
    "TransportError",
    "build_bot",
    "escape_markdown",
    "format_enriched",
    "format_outcome",
    "strip_markdown",
]
