"""Run storage exceptions."""

from .base import BetaSimError


class StorageError(BetaSimError):
    """Base exception for run storage failures."""

    pass


class RunNotFoundError(StorageError):
    """Raised when a run ID does not exist in storage."""

    pass
