"""Base exception classes for betasim.

Every error raised by the engine derives from ``BetaSimError`` and carries a
human-readable message plus a ``details`` mapping for structured logging.
"""

from __future__ import annotations

from typing import Any


class BetaSimError(Exception):
    """Base exception for all betasim errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(BetaSimError):
    """Raised when caller-supplied input is invalid."""

    pass


class ConfigurationError(BetaSimError):
    """Raised when environment or CLI configuration is missing or malformed."""

    pass
