"""
Chat Bot - Event loop, reply dispatch and reloading
===================================================

This module ties everything together:
- Incoming messages are queued by the transport and handled one at
  a time on the main loop
- The rate limiter decides whether the bot answers at all
- Actions are evaluated against an immutable snapshot of the active
  rules; command and shell reactions continue on a worker thread so
  a slow program cannot stall the loop
- Reloads requested by builtins run between two messages
"""

import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from core.config import Settings, load_settings
from core.exceptions import BotError, TransportError
from core.logging import clear_log_context, get_logger, set_log_context
from core.rate_limiter import RateLimiter
from rules.definitions import ActionFile, load_rules
from rules.engine import Message, RuleSet, TargetContext
from rules.listing import build_pages
from rules.store import DynamicRuleStore

from .builtins import BuiltinCommands
from .transport import Transport

_STOP = object()
_RELOAD = object()


@dataclass(frozen=True)
class BotState:
    """
    Everything a message is handled with.

    Replaced as a whole on reload; never mutated.
    """
    settings: Settings
    rules: RuleSet
    pages: Tuple[str, ...] = ()

    @property
    def store(self) -> DynamicRuleStore:
        return DynamicRuleStore(self.settings.dynamic_actions_path)


def build_state(settings: Settings) -> BotState:
    """
    Build the rules for a set of settings.

    Configured actions come first, then the builtins, then the
    dynamic actions.

    Raises:
        ConfigError: If any action or include is invalid
        PersistenceError: If the dynamic action file cannot be read
    """
    source = settings.settings_path or "settings"
    root_path = Path(settings.settings_path) if settings.settings_path else None
    configured = load_rules(
        ActionFile.from_dict(settings.actions, source=source),
        Path(settings.base_dir or "."),
        source,
        root_path=root_path,
    )
    builtins = BuiltinCommands(settings.prefix).rules()
    dynamic = DynamicRuleStore(settings.dynamic_actions_path).load_rules()

    rules = configured + builtins + dynamic
    return BotState(settings=settings, rules=rules, pages=tuple(build_pages(rules)))


class ChatBot:
    """
    A bot session on one transport.

    Builtin callbacks receive the session and may use ``state``,
    ``store``, ``logger``, ``request_reload()`` and ``quit()``.

    Example:
        settings = load_settings("settings.yaml")
        bot = ChatBot(settings, transport)
        transport.connect(settings)
        bot.start()
    """

    def __init__(self, settings: Settings, transport: Transport, logger=None,
                 max_workers: int = 4):
        """
        Initialize the bot and load all actions.

        Args:
            settings: Loaded settings; ``settings_path`` is re-read on reload
            transport: Connection used for replies
            logger: Logger for this session
            max_workers: Threads available to command and shell reactions

        Raises:
            BotError: If the initial actions cannot be loaded
        """
        self.transport = transport
        self.logger = logger or get_logger("services.bot")
        self._state = build_state(settings)
        self.rate_limiter = RateLimiter(settings.rate_limit, settings.rate_limit_window)

        self._queue: "queue.Queue" = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="reaction")
        self._reply_lock = threading.Lock()
        self._reload_requested = False
        self._running = False
        self._closed = False
        self._thread: Optional[threading.Thread] = None

        self.logger.info(
            "Loaded actions",
            extra={"actions": len(self._state.rules), "pages": len(self._state.pages)}
        )

    @property
    def state(self) -> BotState:
        return self._state

    @property
    def settings(self) -> Settings:
        return self._state.settings

    @property
    def store(self) -> DynamicRuleStore:
        return self._state.store

    # Event loop

    def submit(self, message: Message) -> None:
        """Queue an incoming message. Safe to call from any thread."""
        if self._closed:
            return
        self._queue.put(message)

    def start(self) -> None:
        """Run the main loop on a background thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._loop, name="bot-loop", daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Run the main loop on the current thread until stopped."""
        self._running = True
        self._loop()

    def stop(self) -> None:
        """Stop accepting messages. Running reactions are not interrupted."""
        self._running = False
        self._queue.put(_STOP)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self) -> None:
        self.logger.info("Bot loop started")
        while self._running:
            item = self._queue.get()
            if item is _STOP:
                break
            if item is _RELOAD:
                self._reload_if_requested()
                continue
            self.process(item)
        self._running = False
        self._executor.shutdown(wait=False)
        self.logger.info("Bot loop stopped")

    def process(self, message: Message) -> None:
        """
        Handle one message.

        Reloads requested earlier, for example by a builtin that ran on
        a worker, are applied first; a reload requested by this message
        is applied right after it.
        """
        self._reload_if_requested()
        set_log_context(sender=message.sender.name, target=message.target.label)
        try:
            self.handle_message(message)
        finally:
            clear_log_context()
            self._reload_if_requested()

    # Message handling

    def handle_message(self, message: Message) -> Optional[str]:
        """
        Handle one incoming message.

        Returns:
            The reply sent from this thread, if any. Replies of command
            and shell reactions are sent later from a worker.
        """
        if self._closed:
            return None

        own_id = self.transport.own_client_id
        if own_id is not None and message.sender.id == own_id:
            return None

        if not self.rate_limiter.allow():
            self.logger.warning(
                "Ignored message because of rate limiting",
                extra={"target": message.target.label, "sender": message.sender.name, "text": message.text}
            )
            return None

        self.logger.debug(
            "Got message",
            extra={"target": message.target.label, "sender": message.sender.name, "text": message.text}
        )

        state = self._state

        def offload(index: int) -> None:
            self._executor.submit(self._finish, state, message, index)

        try:
            reply = state.rules.handle(self, message, offload=offload)
        except Exception as e:
            self.logger.error(f"Failed to handle message: {e}", exc_info=True)
            return None

        if reply:
            self._deliver(message, reply)
        return reply

    def _finish(self, state: BotState, message: Message, index: int) -> None:
        try:
            reply = state.rules.handle(self, message, start=index)
        except Exception as e:
            self.logger.error(f"Failed to handle message: {e}", exc_info=True)
            return
        if self._reload_requested:
            self._queue.put(_RELOAD)
        if reply:
            self._deliver(message, reply)

    def _deliver(self, message: Message, reply: str) -> None:
        with self._reply_lock:
            if self._closed:
                self.logger.debug("Dropping reply after shutdown", extra={"sender": message.sender.name})
                return
            self.rate_limiter.record()
            try:
                self._send(message, reply)
            except TransportError as e:
                self.logger.error(f"Failed to send response: {e}")

    def _send(self, message: Message, text: str) -> None:
        target = message.target
        if target is TargetContext.POKE:
            self.transport.poke(message.sender.id, text)
        elif target is TargetContext.CLIENT:
            self.transport.send_text(target, text, client_id=message.sender.id)
        else:
            self.transport.send_text(target, text)

    # Reloading

    def request_reload(self) -> None:
        """Reload after the current message is handled."""
        self._reload_requested = True

    def _reload_if_requested(self) -> None:
        if self._reload_requested:
            self._reload_requested = False
            self.reload()

    def reload(self) -> bool:
        """
        Re-read settings and rebuild all actions.

        The new state is published only if everything loaded; on any
        failure the previous settings and actions stay active.

        Returns:
            True if the reload succeeded
        """
        previous = self._state
        path = previous.settings.settings_path
        try:
            settings = load_settings(path) if path else previous.settings
            state = build_state(settings)
        except BotError as e:
            self.logger.error(f"Failed to reload: {e}")
            return False
        except Exception as e:
            self.logger.error(f"Failed to reload: {e}", exc_info=True)
            return False

        self._state = state
        self.rate_limiter.reconfigure(settings.rate_limit, settings.rate_limit_window)
        self.logger.info(
            "Reloaded successfully",
            extra={"actions": len(state.rules), "pages": len(state.pages)}
        )
        return True

    # Shutdown

    def quit(self) -> None:
        """Leave the server: stop handling messages and disconnect."""
        self.stop()
        self.shutdown()

    def shutdown(self) -> None:
        """Disconnect from the server. Safe to call more than once."""
        with self._reply_lock:
            if self._closed:
                return
            self._closed = True
        self._running = False
        try:
            self.transport.disconnect(self.settings.disconnect_message)
        except TransportError as e:
            self.logger.debug(f"Ignoring disconnect error: {e}")

    @property
    def closed(self) -> bool:
        return self._closed

    def status(self) -> dict:
        state = self._state
        return {
            "name": state.settings.name,
            "connected": self.transport.connected and not self._closed,
            "actions": len(state.rules),
            "pages": len(state.pages),
            "rate_limit": self.rate_limiter.status().to_dict(),
        }
