"""
Simple Bot - Rule-based chat bot for voice server text chat
===========================================================

A small bot that answers text messages and pokes on a voice server.
Responses come from ordered actions:
1. Fixed responses, external commands and shell scripts
2. Builtin commands to add, remove and list actions at runtime

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Simple Bot Team"
__license__ = "MIT"
