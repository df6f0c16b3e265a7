"""Custom exceptions for the betasim engine.

All exceptions carry a message and a ``details`` mapping so callers can log
them with structured context.
"""

from betasim.exceptions.base import BetaSimError, ConfigurationError, ValidationError
from betasim.exceptions.storage import RunNotFoundError, StorageError
from betasim.exceptions.target import FlowStateError, OracleError, TargetServiceError

__all__ = [
    "BetaSimError",
    "ConfigurationError",
    "ValidationError",
    "TargetServiceError",
    "FlowStateError",
    "OracleError",
    "StorageError",
    "RunNotFoundError",
]
