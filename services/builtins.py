"""
Builtin Commands - Administrative actions
=========================================

Builtins are ordinary rules with a prefix command matcher and a
callback reaction. They are registered after the configured
actions and before the dynamic ones, so a dynamic action can never
answer a ``del`` meant for it.

Callbacks receive the bot session, which gives them the dynamic
store, the cached listing, reload requests and shutdown.
"""

import re
from typing import Optional

from core.exceptions import PersistenceError
from rules.engine import Message, PatternMatcher, Rule, RuleSet
from rules.listing import render_page
from rules.reactions import Callback

COMMANDS = ("help", "list", "add", "del", "reload", "quit")


class BuiltinCommands:
    """
    Callbacks for all builtin commands with one prefix.

    Example:
        rules = BuiltinCommands(".").rules()
    """

    def __init__(self, prefix: str = "."):
        self.prefix = prefix
        escaped = re.escape(prefix)
        self.add_regex = re.compile(rf"^{escaped}add (?P<response>.+) on (?P<trigger>.+)$", re.DOTALL)
        self.del_regex = re.compile(rf"^{escaped}del (?P<trigger>.+)$", re.DOTALL)
        self.list_regex = re.compile(rf"^{escaped}list(?:\s+(?P<page>\S+))?")

    def rules(self) -> RuleSet:
        """Build one rule per command, in a fixed order."""
        escaped = re.escape(self.prefix)
        rules = []
        for name in COMMANDS:
            function = getattr(self, f"cmd_{name}")
            matcher = PatternMatcher.compile(rf"^{escaped}{name}\b")
            rules.append(Rule((matcher,), Callback(function, name), source=f"builtin:{name}"))
        return RuleSet(rules)

    def usage(self) -> str:
        p = self.prefix
        return "\n".join([
            "Commands:",
            f"{p}help - Show this message",
            f"{p}list [page] - List all triggers",
            f"{p}add <response> on <trigger> - Respond to a trigger",
            f"{p}del <trigger> - Remove the responses to a trigger",
            f"{p}reload - Reload settings and actions",
            f"{p}quit - Disconnect the bot",
        ])

    def cmd_help(self, session, message: Message) -> Optional[str]:
        return self.usage()

    def cmd_list(self, session, message: Message) -> Optional[str]:
        match = self.list_regex.match(message.text)
        requested = 1
        if match and match.group("page"):
            try:
                requested = int(match.group("page"))
            except ValueError:
                requested = 1
        return render_page(list(session.state.pages), requested)

    def cmd_add(self, session, message: Message) -> Optional[str]:
        match = self.add_regex.match(message.text)
        response = match.group("response").strip() if match else ""
        trigger = match.group("trigger").strip() if match else ""
        if not response or not trigger:
            return f"Usage: {self.prefix}add <response> on <trigger>"

        try:
            session.store.add(response, trigger)
        except PersistenceError as e:
            session.logger.error(f"Failed to add action: {e}")
            return f"Failed to save actions: {e.message}"

        session.request_reload()
        return "Added action"

    def cmd_del(self, session, message: Message) -> Optional[str]:
        match = self.del_regex.match(message.text)
        trigger = match.group("trigger").strip() if match else ""
        if not trigger:
            return f"Usage: {self.prefix}del <trigger>"

        try:
            removed = session.store.remove(trigger)
        except PersistenceError as e:
            session.logger.error(f"Failed to remove action: {e}")
            return f"Failed to save actions: {e.message}"

        session.request_reload()
        return f"Removed {removed} action" if removed == 1 else f"Removed {removed} actions"

    def cmd_reload(self, session, message: Message) -> Optional[str]:
        session.request_reload()
        return "Reloading actions"

    def cmd_quit(self, session, message: Message) -> Optional[str]:
        session.logger.info("Leaving on request", extra={"sender": message.sender.name})
        session.quit()
        return ""
