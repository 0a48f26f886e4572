"""
Rules Module - Action matching and reactions
============================================

This module provides the rule system the bot answers with:
- Literal and regular expression triggers
- Chat context matching
- Fixed responses, external commands and shell scripts
- YAML action files with includes
- The runtime-editable dynamic action store
"""

from .engine import Message, Sender, TargetContext, Rule, RuleSet, PatternMatcher, ContextMatcher
from .reactions import PlainText, ExternalCommand, Shell, Callback
from .definitions import ActionFile, RuleDefinition, load_rules
from .store import DynamicRuleStore
from .listing import build_pages, render_page

__all__ = [
    "Message",
    "Sender",
    "TargetContext",
    "Rule",
    "RuleSet",
    "PatternMatcher",
    "ContextMatcher",
    "PlainText",
    "ExternalCommand",
    "Shell",
    "Callback",
    "ActionFile",
    "RuleDefinition",
    "load_rules",
    "DynamicRuleStore",
    "build_pages",
    "render_page",
]
