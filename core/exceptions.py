"""
Exception Definitions - Custom exceptions for Simple Bot
========================================================

This module defines all custom exceptions used throughout the application,
providing clear error handling and meaningful error messages.
"""


class BotError(Exception):
    """
    Base exception for all Simple Bot errors.

    All custom exceptions in this application inherit from this base class,
    allowing for easy catching of all application-specific errors.

    Attributes:
        message (str): Human-readable error description
        details (dict): Additional error details for debugging
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(BotError):
    """
    Configuration-related errors.

    Raised when there are issues with:
    - Settings files that cannot be parsed
    - Invalid configuration values
    - Malformed action definitions
    """
    pass


class ConfigConflict(ConfigError):
    """
    An action definition supplies mutually exclusive fields.

    Raised for both ``contains`` and ``matches`` on one action, or for
    more than one of ``response``, ``command`` and ``shell``.
    """
    pass


class PatternError(ConfigError):
    """Invalid regular expression in an action definition."""

    def __init__(self, message: str, pattern: str = "", details: dict = None):
        self.pattern = pattern
        super().__init__(message, details)


class IncludeError(ConfigError):
    """
    Action file include errors.

    Raised when an included file is missing, unreadable or not valid YAML.
    """
    pass


class IncludeCycleError(IncludeError):
    """
    An action file includes itself, directly or through other files.

    Attributes:
        chain (list): Files on the include chain, ending with the repeated one
    """

    def __init__(self, message: str, chain: list = None, details: dict = None):
        self.chain = chain or []
        super().__init__(message, details)


class PersistenceError(BotError):
    """
    Durable storage errors.

    Raised when there are issues with:
    - Reading the dynamic action file
    - Writing the dynamic action file
    """
    pass


class ProcessError(BotError):
    """
    External command errors.

    Raised when a command or shell reaction:
    - Cannot be spawned
    - Produces output that is not valid UTF-8
    """
    pass


class TransportError(BotError):
    """
    Transport errors.

    Raised when there are issues with:
    - Connecting to the bridge
    - Sending a message or poke
    - Disconnecting
    """
    pass
