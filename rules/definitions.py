"""
Action Definitions - The serializable form of actions
=====================================================

This module turns YAML action files into rules:

    include:
      - more_actions.yaml
    on_message:
      - contains: hello
        response: Hi!
      - matches: "^!roll"
        command: /usr/local/bin/roll
      - chat: poke
        shell: 'echo "Poked by $3"'

Included files are loaded after the definitions of the including
file. Each include path is relative to the directory of the file
that names it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from core.exceptions import ConfigConflict, ConfigError, IncludeCycleError, IncludeError

from .engine import ContextMatcher, Matcher, PatternMatcher, Rule, RuleSet, TargetContext
from .reactions import ExternalCommand, PlainText, Reaction, Shell

DEFINITION_KEYS = ("contains", "matches", "chat", "response", "command", "shell")


@dataclass
class RuleDefinition:
    """
    One action as written in an action file.

    Attributes:
        contains (str): Literal text, matched at word boundaries
        matches (str): Regular expression
        chat (str): ``server``, ``channel``, ``client`` or ``poke``
        response (str): Fixed reply
        command (str): Program to execute
        shell (str): Script to run in a shell
    """
    contains: Optional[str] = None
    matches: Optional[str] = None
    chat: Optional[str] = None
    response: Optional[str] = None
    command: Optional[str] = None
    shell: Optional[str] = None

    def to_rule(self, source: str = "") -> Rule:
        """
        Compile this definition.

        Raises:
            ConfigConflict: If mutually exclusive fields are set
            PatternError: If the pattern does not compile
            ConfigError: If the chat mode or a command is invalid
        """
        matchers: List[Matcher] = []

        if self.contains is not None and self.matches is not None:
            raise ConfigConflict(
                "An action can only have either contains or matches. "
                f"This one contains both ({self.contains} and {self.matches})",
                {"source": source} if source else None
            )
        if self.contains is not None:
            matchers.append(PatternMatcher.literal(self.contains))
        elif self.matches is not None:
            matchers.append(PatternMatcher.compile(self.matches))

        if self.chat is not None:
            try:
                context = TargetContext.parse(self.chat)
            except ValueError as e:
                raise ConfigError(str(e), {"source": source} if source else None)
            matchers.append(ContextMatcher(None if context is TargetContext.POKE else context))

        return Rule(tuple(matchers), self._reaction(source), source)

    def _reaction(self, source: str) -> Optional[Reaction]:
        reactions: List[Reaction] = []
        if self.response is not None:
            reactions.append(PlainText(self.response))
        if self.command is not None:
            if not self.command.split():
                raise ConfigError("command cannot be empty", {"source": source} if source else None)
            reactions.append(ExternalCommand(self.command))
        if self.shell is not None:
            reactions.append(Shell(self.shell))

        if len(reactions) > 1:
            raise ConfigConflict(
                "Only one reaction (response, command or shell) is allowed.",
                {"source": source} if source else None
            )
        return reactions[0] if reactions else None

    @property
    def trigger(self) -> Optional[str]:
        return self.contains if self.contains is not None else self.matches

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, key) for key in DEFINITION_KEYS if getattr(self, key) is not None}

    @classmethod
    def from_dict(cls, data: Any, source: str = "") -> "RuleDefinition":
        if not isinstance(data, dict):
            raise ConfigError(f"An action must be a mapping, got {data!r}", {"source": source})

        unknown = sorted(set(data) - set(DEFINITION_KEYS))
        if unknown:
            raise ConfigError(f"Unknown action fields: {', '.join(map(str, unknown))}", {"source": source})

        values = {}
        for key in DEFINITION_KEYS:
            value = data.get(key)
            if value is None:
                continue
            if isinstance(value, (dict, list)):
                raise ConfigError(f"Action field {key} must be a string", {"source": source})
            values[key] = str(value)
        return cls(**values)


@dataclass
class ActionFile:
    """
    A document of action definitions plus includes.

    Attributes:
        include (list): Paths of further action files
        on_message (list): Definitions in this document
    """
    include: List[str] = field(default_factory=list)
    on_message: List[RuleDefinition] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "include": list(self.include),
            "on_message": [d.to_dict() for d in self.on_message],
        }

    @classmethod
    def from_dict(cls, data: Any, source: str = "") -> "ActionFile":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("An action file must be a mapping", {"source": source})

        unknown = sorted(set(data) - {"include", "on_message"})
        if unknown:
            raise ConfigError(f"Unknown action file fields: {', '.join(map(str, unknown))}", {"source": source})

        include = data.get("include") or []
        on_message = data.get("on_message") or []
        if not isinstance(include, list) or not isinstance(on_message, list):
            raise ConfigError("include and on_message must be lists", {"source": source})

        return cls(
            include=[str(path) for path in include],
            on_message=[RuleDefinition.from_dict(item, source) for item in on_message],
        )

    @classmethod
    def read(cls, path: Path) -> "ActionFile":
        """
        Read an action file.

        Raises:
            OSError: If the file cannot be read
            ConfigError: If it is not a valid action file
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Failed to parse action file: {e}", {"path": str(path)})
            except UnicodeDecodeError as e:
                raise ConfigError(f"Action file is not valid UTF-8: {e}", {"path": str(path)})
        return cls.from_dict(data, source=str(path))


def load_rules(
    action_file: ActionFile,
    base_dir: Path,
    source: str = "",
    root_path: Optional[Path] = None,
) -> RuleSet:
    """
    Compile an action file and all of its includes.

    Args:
        action_file: Root document
        base_dir: Directory that the root's includes are relative to
        source: Label of the root document for error messages
        root_path: File the root document was read from, if any

    Returns:
        RuleSet in definition order, includes after the including file

    Raises:
        ConfigError: On any invalid definition or include
    """
    rules: List[Rule] = []
    chain = (Path(root_path).resolve(),) if root_path else ()
    _collect(action_file, Path(base_dir), source, chain, rules)
    return RuleSet(rules)


def _collect(
    action_file: ActionFile,
    base_dir: Path,
    source: str,
    chain: Tuple[Path, ...],
    rules: List[Rule],
) -> None:
    for index, definition in enumerate(action_file.on_message):
        rules.append(definition.to_rule(f"{source}#{index}" if source else f"#{index}"))

    for include in action_file.include:
        path = (base_dir / include).resolve()
        if path in chain:
            names = [str(p) for p in chain + (path,)]
            raise IncludeCycleError(
                f"Action file {path} includes itself",
                chain=names,
                details={"chain": " -> ".join(names)}
            )
        try:
            included = ActionFile.read(path)
        except OSError as e:
            raise IncludeError(f"Failed to read included action file {path}: {e}", {"from": source})
        _collect(included, path.parent, str(path), chain + (path,), rules)

