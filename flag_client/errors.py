"""
Exception types for the flag client.

Only reload problems are ever raised. Evaluation never raises for a
missing or mistyped flag; it degrades to the documented default instead.
"""


class FlagClientError(Exception):
    """Base class for all flag client errors."""


class ParseError(FlagClientError, ValueError):
    """Raised when a flag payload cannot be turned into a Snapshot."""

    def __init__(self, message: str, payload_size: int = 0):
        super().__init__(message)
        self.payload_size = payload_size
