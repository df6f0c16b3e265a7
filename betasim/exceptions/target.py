"""Exceptions raised while talking to the target service or the oracle."""

from __future__ import annotations

from typing import Any

from .base import BetaSimError, ValidationError


class TargetServiceError(BetaSimError):
    """A call against the target service failed.

    ``status_code`` is None for transport-level failures (timeouts, refused
    connections). ``error_type`` is the kind reported by the target in its
    JSON body; transport failures leave it unset and name the network
    failure in ``details["network_error"]``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.error_type = error_type
        self.endpoint = endpoint


class FlowStateError(ValidationError):
    """Raised when a flow step runs without the state an earlier step should have produced."""

    pass


class OracleError(BetaSimError):
    """Raised when the decision/content oracle fails or returns malformed output."""

    pass
