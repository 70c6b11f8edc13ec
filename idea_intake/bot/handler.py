"""
Chat command handler.

Turns incoming chat messages into pipeline submissions and renders the
outcome back into the chat:

    /idea <text>   -> validate, "Analyzing..." reply, submit, edit reply
    /start, /help  -> help text
    anything else  -> ignored

Messages are handled on a worker pool so one slow LLM call does not
hold up other chats.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Optional

from idea_intake.bot import formatting
from idea_intake.bot.transport import ChatTransport, IncomingMessage, SentMessage, TransportError
from idea_intake.models.idea import Submission
from idea_intake.pipeline import IntakePipeline, IntakeResult

logger = logging.getLogger(__name__)

MIN_IDEA_LENGTH = 10
MAX_IDEA_LENGTH = 2000


class IdeaBot:
    """
    Chat front end for the intake pipeline.

    Usage:
        bot = IdeaBot(pipeline, transport, allowed_chats=[-1001234])
        bot.start_cleanup(3600)
        for message in updates:
            bot.dispatch(message)
        bot.shutdown()
    """

    def __init__(
        self,
        pipeline: IntakePipeline,
        transport: ChatTransport,
        allowed_chats: Iterable[int] = (),
        base_url: str = "http://localhost:8080",
        timeout: Optional[float] = 60.0,
        max_workers: int = 8,
    ):
        self.pipeline = pipeline
        self.transport = transport
        self.allowed_chats = frozenset(allowed_chats)
        self.base_url = base_url
        self.timeout = timeout

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="idea-bot")
        self._cleanup_timer: Optional[threading.Timer] = None
        self._cleanup_lock = threading.Lock()
        self._stopped = False

    def is_allowed(self, chat_id: int) -> bool:
        """An empty allow-list admits every chat."""
        return not self.allowed_chats or chat_id in self.allowed_chats

    # =========================================================================
    # Message handling
    # =========================================================================

    def handle_message(self, message: IncomingMessage) -> Optional[IntakeResult]:
        """
        Handle one incoming message synchronously.

        Returns:
            The IntakeResult when an idea was submitted, otherwise None.
        """
        if not self.is_allowed(message.chat_id):
            logger.info(
                "Ignored message from unauthorized chat: %s (%s)",
                message.chat_id, message.chat_title,
            )
            return None

        if not message.is_command:
            return None

        command, args = message.command()
        if command == "idea":
            return self._handle_idea(message, args)
        if command in ("start", "help"):
            self._reply(message, formatting.HELP_TEXT, markdown=True)
        return None

    def _handle_idea(self, message: IncomingMessage, text: str) -> Optional[IntakeResult]:
        if not text:
            self._reply(message, formatting.USAGE_TEXT)
            return None
        if len(text) < MIN_IDEA_LENGTH:
            self._reply(message, formatting.TOO_SHORT_TEXT)
            return None
        if len(text) > MAX_IDEA_LENGTH:
            self._reply(message, formatting.TOO_LONG_TEXT)
            return None

        thinking = self._reply(message, formatting.THINKING_TEXT)

        submission = Submission(
            raw_text=text,
            user_id=message.user_id,
            username=message.username,
            first_name=message.first_name,
            chat_id=message.chat_id,
            message_id=message.message_id,
        )
        result = self.pipeline.submit(submission, timeout=self.timeout)

        reply, markdown = formatting.format_outcome(result, text, self.base_url)
        if thinking is None:
            self._reply(message, reply, markdown=markdown)
        else:
            self._edit(thinking, reply, markdown=markdown)
        return result

    def _reply(self, message: IncomingMessage, text: str, markdown: bool = False) -> Optional[SentMessage]:
        try:
            return self.transport.send_message(
                message.chat_id, text, reply_to=message.message_id, markdown=markdown
            )
        except TransportError as e:
            if not markdown:
                logger.error("Failed to send message: %s", e)
                return None
            logger.warning("Failed to send markdown message: %s, trying plain text", e)
        return self._reply(message, formatting.strip_markdown(text))

    def _edit(self, sent: SentMessage, text: str, markdown: bool = False) -> None:
        try:
            self.transport.edit_message(sent, text, markdown=markdown)
            return
        except TransportError as e:
            if not markdown:
                logger.error("Failed to edit message: %s", e)
                return
            logger.warning("Failed to edit markdown message: %s, trying plain text", e)
        self._edit(sent, formatting.strip_markdown(text))

    # =========================================================================
    # Concurrency
    # =========================================================================

    def dispatch(self, message: IncomingMessage) -> Future:
        """Handle a message on the worker pool."""
        return self._executor.submit(self._handle_logged, message)

    def _handle_logged(self, message: IncomingMessage) -> Optional[IntakeResult]:
        try:
            return self.handle_message(message)
        except Exception:
            logger.exception("Unhandled error for message %s in chat %s", message.message_id, message.chat_id)
            raise

    def start_cleanup(self, interval_seconds: float) -> None:
        """Reset rate limiter buckets every interval_seconds until shutdown."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._cleanup_interval = interval_seconds
        self._schedule_cleanup()

    def _schedule_cleanup(self) -> None:
        with self._cleanup_lock:
            if self._stopped:
                return
            self._cleanup_timer = threading.Timer(self._cleanup_interval, self._run_cleanup)
            self._cleanup_timer.daemon = True
            self._cleanup_timer.start()

    def _run_cleanup(self) -> None:
        tracked = self.pipeline.rate_limiter.tracked_users
        self.pipeline.rate_limiter.reset()
        logger.info("Rate limiter reset, %d user buckets dropped", tracked)
        self._schedule_cleanup()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the cleanup timer and the worker pool."""
        with self._cleanup_lock:
            self._stopped = True
            if self._cleanup_timer is not None:
                self._cleanup_timer.cancel()
        self._executor.shutdown(wait=wait)


def build_bot(settings, pipeline: IntakePipeline, transport: ChatTransport, max_workers: int = 8) -> IdeaBot:
    """
    Wire a bot from IntakeSettings and start the periodic limiter reset.

    The reset timer runs every settings.rate_limit_reset_minutes until
    bot.shutdown() is called.
    """
    bot = IdeaBot(
        pipeline,
        transport,
        allowed_chats=settings.allowed_chats,
        base_url=settings.web_base_url,
        timeout=settings.llm_timeout,
        max_workers=max_workers,
    )
    bot.start_cleanup(settings.rate_limit_reset_minutes * 60)
    return bot
