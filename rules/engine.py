"""
Rules Engine - Matching incoming messages against ordered actions
=================================================================

This module implements the core rules engine. A rule pairs a list
of matchers, which must all hold, with at most one reaction. Rules
are tried in order and the first conclusive reaction wins.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional, Pattern, Sequence, Tuple, TYPE_CHECKING

from core.exceptions import PatternError

if TYPE_CHECKING:
    from .reactions import Reaction


class TargetContext(Enum):
    """Where a message was sent to."""
    SERVER = "server"
    CHANNEL = "channel"
    CLIENT = "client"
    POKE = "poke"

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "TargetContext":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Chat mode must be server, channel, client or poke. '{value}' is not allowed."
            )


@dataclass(frozen=True)
class Sender:
    """
    The client that sent a message.

    Attributes:
        id (int): Client id on the server, used to address replies
        name (str): Display name
        uid (bytes): Persistent identity, if the server reported one
    """
    id: int
    name: str
    uid: Optional[bytes] = None


@dataclass(frozen=True)
class Message:
    """
    Normalized incoming message or poke.

    Created by a transport, consumed by the engine, never stored.
    """
    target: TargetContext
    sender: Sender
    text: str

    def __str__(self) -> str:
        return f"[{self.target.label}] {self.sender.name}: {self.text[:50]}"


class Matcher:
    """Predicate over a normalized message."""

    def matches(self, message: Message) -> bool:
        raise NotImplementedError


class PatternMatcher(Matcher):
    """Matches if the regular expression is found anywhere in the text."""

    def __init__(self, pattern: Pattern[str]):
        self.pattern = pattern

    def matches(self, message: Message) -> bool:
        return self.pattern.search(message.text) is not None

    @classmethod
    def compile(cls, expression: str) -> "PatternMatcher":
        """
        Compile a raw regular expression.

        Raises:
            PatternError: If the expression is invalid
        """
        try:
            return cls(re.compile(expression))
        except re.error as e:
            raise PatternError(f"Invalid pattern {expression!r}: {e}", pattern=expression)

    @classmethod
    def literal(cls, text: str) -> "PatternMatcher":
        """
        Match a literal string as a whole word.

        The string is escaped and ``\\b`` is added on each side that
        starts or ends with a word character, so triggers such as
        ``!ping`` or ``c++`` still match next to punctuation.
        """
        escaped = re.escape(text)
        prefix = r"\b" if escaped[:1] and _is_word_char(escaped[0]) else ""
        suffix = r"\b" if escaped[-1:] and _is_word_char(escaped[-1]) else ""
        return cls.compile(f"{prefix}{escaped}{suffix}")

    def __repr__(self) -> str:
        return f"PatternMatcher({self.pattern.pattern!r})"


class ContextMatcher(Matcher):
    """Matches on where the message was sent. ``None`` means a poke."""

    def __init__(self, context: Optional[TargetContext]):
        self.context = context

    def matches(self, message: Message) -> bool:
        if self.context is None:
            return message.target is TargetContext.POKE
        return message.target is self.context

    def __repr__(self) -> str:
        label = self.context.label if self.context else "poke"
        return f"ContextMatcher({label})"


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


@dataclass(frozen=True)
class Rule:
    """
    A single action.

    Attributes:
        matchers (tuple): All of these have to match
        reaction (Reaction): What to do on a match; ``None`` silences the message
        source (str): Where the rule was defined, for logs and listings
    """
    matchers: Tuple[Matcher, ...]
    reaction: Optional["Reaction"] = None
    source: str = ""

    def matches(self, message: Message) -> bool:
        return all(matcher.matches(message) for matcher in self.matchers)

    @property
    def patterns(self) -> Tuple[str, ...]:
        return tuple(
            m.pattern.pattern for m in self.matchers if isinstance(m, PatternMatcher)
        )


class RuleSet:
    """
    Ordered, immutable collection of rules.

    Example:
        rules = RuleSet([
            Rule((PatternMatcher.literal("hello"),), PlainText("Hi!")),
        ])
        reply = rules.handle(session, message)
    """

    def __init__(self, rules: Sequence[Rule] = ()):
        self.rules: Tuple[Rule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __add__(self, other: "RuleSet") -> "RuleSet":
        return RuleSet(self.rules + tuple(other))

    def handle(
        self,
        session,
        message: Message,
        start: int = 0,
        offload: Optional[Callable[[int], None]] = None,
    ) -> Optional[str]:
        """
        Evaluate a message against the rules, in order.

        A matching rule without a reaction stops evaluation. An
        inconclusive reaction (``None``) moves on to the next rule, an
        empty string suppresses the reply and any other string is the
        reply.

        Args:
            session: Passed through to reactions
            message: Message to evaluate
            start: Index of the first rule to try
            offload: If given, called with the index of the first matching
                rule whose reaction blocks; evaluation then stops here and
                the caller continues from that index elsewhere

        Returns:
            The reply, or None if there is nothing to send
        """
        for index in range(start, len(self.rules)):
            rule = self.rules[index]
            if not rule.matches(message):
                continue

            if rule.reaction is None:
                return None

            if offload is not None and rule.reaction.blocking:
                offload(index)
                return None

            result = rule.reaction.execute(session, message)
            if result is None:
                continue
            if result == "":
                return None
            return result

        return None
