"""
hashpipe exception hierarchy.

All hashpipe exceptions inherit from HashpipeError, making it easy for callers
to catch library-level errors while still distinguishing specific failure modes.
"""


class HashpipeError(Exception):
    """Base exception class for all hashpipe errors."""


class ConfigurationError(HashpipeError):
    """Raised for configuration errors (missing keys, invalid values)."""


class ConnectionFailure(HashpipeError):
    """Raised when the IRC connection cannot connect, send, or receive."""


class MessageParseError(HashpipeError):
    """Raised when a raw IRC line cannot be parsed into a message."""

    def __init__(self, reason: str, line: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.line = line


class ChannelClosed(HashpipeError):
    """Raised when sending on an event channel that has been closed."""
