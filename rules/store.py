"""
Dynamic Rule Store - Actions added at runtime
=============================================

Users add and remove simple ``contains``/``response`` actions with
builtin commands. They live in their own action file, which is
rewritten wholesale on every change and never edited by hand while
the bot runs.
"""

import os
import tempfile
from pathlib import Path
from typing import Union

import yaml

from core.exceptions import ConfigError, PersistenceError
from core.logging import get_logger

from .definitions import ActionFile, RuleDefinition, load_rules
from .engine import RuleSet

logger = get_logger("rules.store")


class DynamicRuleStore:
    """
    Persisted, runtime-editable action file.

    A missing file is an empty store. Concurrent writers are not
    serialized; the last write wins.

    Example:
        store = DynamicRuleStore("dynamic.yaml")
        store.add("Hi!", "hello")
        rules = store.load_rules()
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> ActionFile:
        """
        Read the store from disk.

        Returns:
            The stored action file, empty if the file does not exist

        Raises:
            PersistenceError: If the file exists but cannot be read
            ConfigError: If the file is not a valid action file
        """
        try:
            return ActionFile.read(self.path)
        except FileNotFoundError:
            logger.debug(f"Dynamic actions not loaded, {self.path} does not exist")
            return ActionFile()
        except OSError as e:
            raise PersistenceError(f"Failed to read dynamic actions: {e}", {"path": str(self.path)})

    def write(self, actions: ActionFile) -> None:
        """
        Replace the stored file.

        The document is written to a temporary file next to the store
        and moved into place.

        Raises:
            PersistenceError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(actions.to_dict(), f, default_flow_style=False,
                                   sort_keys=False, allow_unicode=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write dynamic actions: {e}", {"path": str(self.path)})

    def add(self, response: str, trigger: str) -> RuleDefinition:
        """
        Append a ``contains``/``response`` action and persist it.

        Raises:
            PersistenceError: If the store cannot be read or written
        """
        actions = self._read_for_update()
        definition = RuleDefinition(contains=trigger, response=response)
        actions.on_message.append(definition)
        self.write(actions)
        logger.info("Added dynamic action", extra={"trigger": trigger})
        return definition

    def remove(self, trigger: str) -> int:
        """
        Remove every action whose ``contains`` equals ``trigger``.

        Only actions in the store file itself are considered, not the
        ones in files it includes. Nothing is written if nothing matched.

        Returns:
            Number of removed actions

        Raises:
            PersistenceError: If the store cannot be read or written
        """
        actions = self._read_for_update()
        kept = [d for d in actions.on_message if d.contains != trigger]
        removed = len(actions.on_message) - len(kept)
        if removed:
            actions.on_message = kept
            self.write(actions)
            logger.info("Removed dynamic actions", extra={"trigger": trigger, "count": removed})
        return removed

    def load_rules(self) -> RuleSet:
        """
        Compile the stored actions and their includes.

        Raises:
            PersistenceError: If the file exists but cannot be read
            ConfigError: If an action or include is invalid
        """
        return load_rules(self.read(), self.path.parent, str(self.path), root_path=self.path)

    def _read_for_update(self) -> ActionFile:
        try:
            return self.read()
        except ConfigError as e:
            raise PersistenceError(f"Dynamic actions are invalid: {e.message}", {"path": str(self.path)})
