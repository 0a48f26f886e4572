"""
Transport - Connection between the bot and the chat server
==========================================================

The bot never talks to the voice server protocol directly. A
transport delivers normalized messages to ``ChatBot.submit`` and
offers three outbound operations: send a text message, poke a
client and disconnect.
"""

import getpass
import sys
import threading
from typing import Optional, TextIO, TYPE_CHECKING

from core.logging import get_logger
from rules.engine import Message, Sender, TargetContext

if TYPE_CHECKING:
    from core.config import Settings
    from .bot import ChatBot

logger = get_logger("services.transport")


class Transport:
    """
    Base class for transports.

    Attributes:
        own_client_id (int): Client id of the bot itself, once connected
    """

    own_client_id: Optional[int] = None

    def connect(self, settings: "Settings") -> None:
        """Connect to the server described by the settings."""
        raise NotImplementedError

    def send_text(self, target: TargetContext, text: str, client_id: Optional[int] = None) -> None:
        """
        Send a text message.

        Args:
            target: Server, channel or client chat
            text: Message to send
            client_id: Receiver for client (private) messages
        """
        raise NotImplementedError

    def poke(self, client_id: int, text: str) -> None:
        raise NotImplementedError

    def disconnect(self, message: str) -> None:
        raise NotImplementedError

    @property
    def connected(self) -> bool:
        return self.own_client_id is not None


class ConsoleTransport(Transport):
    """
    Read messages from a text stream and print replies.

    Each input line is a channel message. A line starting with a
    target label and a colon (``poke: hi``, ``client: hi``) is sent
    to that target instead.

    Example:
        transport = ConsoleTransport()
        bot = ChatBot(settings, transport)
        transport.connect(settings)
        transport.listen(bot)
        bot.run()
    """

    OWN_CLIENT_ID = 0
    USER_CLIENT_ID = 1

    def __init__(self, input_stream: TextIO = None, output_stream: TextIO = None,
                 user_name: Optional[str] = None):
        self.input_stream = input_stream or sys.stdin
        self.output_stream = output_stream or sys.stdout
        self.user_name = user_name or _user_name()
        self.bot_name = "bot"
        self._reader: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def connect(self, settings: "Settings") -> None:
        self.bot_name = settings.name
        self.own_client_id = self.OWN_CLIENT_ID
        logger.info(f"Console transport ready, talking to {self.user_name}")

    def listen(self, bot: "ChatBot") -> None:
        """Start a reader thread that feeds input lines to the bot."""
        self._reader = threading.Thread(target=self._read_loop, args=(bot,), daemon=True)
        self._reader.start()

    def parse_line(self, line: str) -> Optional[Message]:
        text = line.rstrip("\r\n")
        if not text:
            return None

        target = TargetContext.CHANNEL
        head, sep, rest = text.partition(":")
        if sep:
            try:
                target = TargetContext.parse(head.strip())
                text = rest.lstrip()
            except ValueError:
                pass

        return Message(target, Sender(self.USER_CLIENT_ID, self.user_name), text)

    def send_text(self, target: TargetContext, text: str, client_id: Optional[int] = None) -> None:
        self._write(f"[{target.label}] {self.bot_name}: {text}")

    def poke(self, client_id: int, text: str) -> None:
        self._write(f"[poke] {self.bot_name} pokes you: {text}")

    def disconnect(self, message: str) -> None:
        if self.own_client_id is None:
            return
        self._write(f"{self.bot_name} disconnected ({message})")
        self.own_client_id = None

    def _read_loop(self, bot: "ChatBot") -> None:
        for line in self.input_stream:
            message = self.parse_line(line)
            if message is not None:
                bot.submit(message)
        logger.info("Console input closed")
        bot.stop()

    def _write(self, text: str) -> None:
        with self._lock:
            self.output_stream.write(text + "\n")
            self.output_stream.flush()


def _user_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "user"
