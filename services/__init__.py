"""
Services Module - Core services for Simple Bot
==============================================

This module provides the main services:
- Chat Bot: Event loop, reply dispatch and reloading
- Builtin Commands: help, list, add, del, reload and quit
- Transports: Console and HTTP relay connections
"""

from .bot import ChatBot, BotState, build_state
from .builtins import BuiltinCommands
from .transport import Transport, ConsoleTransport
from .bridge import BridgeTransport

__all__ = [
    "ChatBot",
    "BotState",
    "build_state",
    "BuiltinCommands",
    "Transport",
    "ConsoleTransport",
    "BridgeTransport",
]
