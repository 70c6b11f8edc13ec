"""
Chat transport abstraction.

The bot logic talks to the chat platform only through ChatTransport,
so the platform client can be swapped or mocked.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from itertools import count
from typing import Optional, Tuple


@dataclass(frozen=True)
class IncomingMessage:
    """A chat message as delivered by the transport."""
    chat_id: int
    message_id: int
    user_id: int
    text: str
    username: str = ""
    first_name: str = ""
    chat_title: str = ""

    @property
    def is_command(self) -> bool:
        return self.text.startswith("/")

    def command(self) -> Tuple[str, str]:
        """
        Split a command message into (command, arguments).

        "/idea@MyBot dark mode" -> ("idea", "dark mode")
        """
        if not self.is_command:
            return "", ""
        head, _, rest = self.text.partition(" ")
        name = head[1:].split("@", 1)[0].lower()
        return name, rest.strip()


@dataclass(frozen=True)
class SentMessage:
    """Handle to a message the bot sent, used for later edits."""
    chat_id: int
    message_id: int


class TransportError(Exception):
    """Raised when the chat platform rejects a send or edit."""


class ChatTransport(ABC):
    """Outgoing side of a chat platform."""

    @abstractmethod
    def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to: Optional[int] = None,
        markdown: bool = False,
    ) -> SentMessage:
        """
        Send a message.

        Raises:
            TransportError: If the platform rejects the message.
        """
        pass

    @abstractmethod
    def edit_message(self, sent: SentMessage, text: str, markdown: bool = False) -> None:
        """
        Replace the text of a message sent earlier.

        Raises:
            TransportError: If the platform rejects the edit.
        """
        pass


class ConsoleTransport(ChatTransport):
    """Prints messages to stdout; used by the command-line entry point."""

    def __init__(self):
        self._ids = count(1)

    def send_message(self, chat_id, text, reply_to=None, markdown=False):
        sent = SentMessage(chat_id=chat_id, message_id=next(self._ids))
        print(text)
        return sent

    def edit_message(self, sent, text, markdown=False):
        print(text)
