"""
Reactions - What an action does once its matchers hold
======================================================

A reaction produces the reply for a matched message:

- ``None`` means inconclusive: the next action should be tested.
- ``""`` means the reply is conclusively suppressed.
- Any other string is the reply.
"""

import base64
import subprocess
from typing import Callable, List, Optional

from core.exceptions import ProcessError
from core.logging import get_logger

from .engine import Message

logger = get_logger("rules.reactions")


class Reaction:
    """Base class for all reactions."""

    #: Whether ``execute`` may block for a long time
    blocking = False

    def execute(self, session, message: Message) -> Optional[str]:
        raise NotImplementedError


class PlainText(Reaction):
    """A fixed response. Always conclusive."""

    def __init__(self, text: str):
        self.text = text

    def execute(self, session, message: Message) -> Optional[str]:
        return self.text

    def __repr__(self) -> str:
        return f"PlainText({self.text!r})"


class ProcessReaction(Reaction):
    """
    Base class for reactions that run an external process.

    The message context is appended to the arguments in this order:
    target (``server``, ``channel``, ``client`` or ``poke``), message
    text, sender name and, if known, the sender uid in base64.

    The process runs to completion without a timeout. Exiting with a
    non-zero status declines the message so later actions are tested;
    the standard output of a successful run is the reply.
    """

    blocking = True

    def build_args(self) -> List[str]:
        raise NotImplementedError

    def execute(self, session, message: Message) -> Optional[str]:
        try:
            return self._run(message)
        except ProcessError as e:
            logger.error(f"{self!r} failed: {e}")
            return ""

    def _run(self, message: Message) -> Optional[str]:
        args = self.build_args() + context_args(message)

        try:
            result = subprocess.run(args, capture_output=True)
        except (OSError, ValueError) as e:
            raise ProcessError(
                f"Failed to execute command: {e}",
                details={"command": args[0] if args else ""}
            )

        if result.returncode != 0:
            logger.debug(
                f"{self!r} declined with status {result.returncode}",
                extra={"stderr": _tail(result.stderr)}
            )
            return None

        try:
            return result.stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProcessError(f"Command output is not valid UTF-8: {e}")


class ExternalCommand(ProcessReaction):
    """Run a program. The command is split on whitespace into program and arguments."""

    def __init__(self, command: str):
        self.command = command

    def build_args(self) -> List[str]:
        return self.command.split()

    def __repr__(self) -> str:
        return f"ExternalCommand({self.command!r})"


class Shell(ProcessReaction):
    """
    Run a script with ``sh -c``.

    The context arguments are available to the script as ``$1`` to ``$4``.
    """

    interpreter = "sh"

    def __init__(self, script: str):
        self.script = script

    def build_args(self) -> List[str]:
        return [self.interpreter, "-c", self.script, self.interpreter]

    def __repr__(self) -> str:
        return f"Shell({self.script!r})"


class Callback(Reaction):
    """
    A Python function, used for builtin commands.

    The function receives the bot session and the message and
    follows the same return contract as every reaction.
    """

    def __init__(self, function: Callable[..., Optional[str]], name: str = ""):
        self.function = function
        self.name = name or getattr(function, "__name__", "callback")

    def execute(self, session, message: Message) -> Optional[str]:
        return self.function(session, message)

    def __repr__(self) -> str:
        return f"Callback({self.name})"


def context_args(message: Message) -> List[str]:
    """Positional arguments describing a message for external commands."""
    args = [message.target.label, message.text, message.sender.name]
    if message.sender.uid:
        args.append(base64.b64encode(message.sender.uid).decode("ascii"))
    return args


def _tail(output: bytes, limit: int = 200) -> str:
    return output[-limit:].decode("utf-8", errors="replace") if output else ""
