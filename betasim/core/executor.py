from __future__ import annotations

import asyncio
import time
import traceback
from typing import Any, Awaitable, Callable, TypeVar

from betasim.core.models import Action, AgentMetrics, ErrorRecord, ErrorSeverity, RunConfig
from betasim.logger import Logger, session_logger

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]

UNKNOWN_ERROR_TYPE = "UNKNOWN"


class ActionExecutor:
    """Runs one named operation with bounded retry, backoff and metrics capture.

    Every call appends to the owning agent's ``AgentMetrics`` and nothing
    else. A step that exhausts its attempts re-raises the last failure,
    which is how the flow runner learns the step was unrecoverable.
    """

    def __init__(
        self,
        metrics: AgentMetrics,
        config: RunConfig,
        *,
        logger: Logger | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._metrics = metrics
        self._config = config
        self._logger = logger or session_logger
        self._sleep = sleep
        self._clock = clock

    def max_attempts(self, retryable: bool) -> int:
        return max(1, self._config.max_retries) if retryable else 1

    async def execute(
        self,
        action_name: str,
        operation: Callable[[], Awaitable[T]],
        retryable: bool = False,
    ) -> T:
        max_attempts = self.max_attempts(retryable)
        started = self._clock()

        self._logger.info(
            "agent.action_start",
            event="agent.action_start",
            action=action_name,
            max_attempts=max_attempts,
        )

        attempt = 0
        while True:
            attempt += 1
            try:
                result = await operation()
            except Exception as exc:
                duration_ms = self._elapsed_ms(started)
                error = build_error_record(exc, action_name=action_name, attempt=attempt)
                self._metrics.errors.append(error)

                if attempt < max_attempts:
                    delay_ms = backoff_delay_ms(self._config.backoff_base_ms, attempt)
                    self._logger.warning(
                        "agent.action_retry",
                        event="agent.action_retry",
                        action=action_name,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay_ms=delay_ms,
                        severity=error.severity.value,
                        error=error.message,
                    )
                    await self._sleep(delay_ms / 1000)
                    continue

                self._logger.error(
                    "agent.action_failed",
                    event="agent.action_failed",
                    action=action_name,
                    attempts=attempt,
                    duration_ms=round(duration_ms, 2),
                    severity=error.severity.value,
                    status_code=error.status_code,
                    error=error.message,
                )
                self._metrics.actions.append(
                    Action(
                        type=action_name,
                        duration_ms=duration_ms,
                        success=False,
                        details={"attempts": attempt},
                        error=error,
                    )
                )
                self._metrics.response_times.append(duration_ms)
                raise

            duration_ms = self._elapsed_ms(started)
            self._metrics.actions.append(
                Action(
                    type=action_name,
                    duration_ms=duration_ms,
                    success=True,
                    details={"attempts": attempt, "result": result},
                )
            )
            self._metrics.response_times.append(duration_ms)
            if self._metrics.steps_completed < self._metrics.steps_total:
                self._metrics.steps_completed += 1

            self._logger.info(
                "agent.action_ok",
                event="agent.action_ok",
                action=action_name,
                attempts=attempt,
                duration_ms=round(duration_ms, 2),
            )
            return result

    def _elapsed_ms(self, started: float) -> float:
        return max(0.0, (self._clock() - started) * 1000)


# ---------------------------------------------------------------------------
# Helpers: error classification and back-off
# ---------------------------------------------------------------------------

def classify_severity(status_code: int | None) -> ErrorSeverity:
    """Map a status-like code to an error severity."""
    if status_code is None:
        return ErrorSeverity.MEDIUM
    if status_code >= 500:
        return ErrorSeverity.CRITICAL
    if status_code in (401, 403):
        return ErrorSeverity.HIGH
    if status_code in (400, 404):
        return ErrorSeverity.MEDIUM
    if status_code == 429:
        return ErrorSeverity.LOW
    return ErrorSeverity.MEDIUM


def backoff_delay_ms(base_ms: float, attempt: int) -> float:
    """Linear back-off: the wait after failed attempt ``k`` is ``base * k``."""
    return base_ms * attempt


def build_error_record(exc: BaseException, *, action_name: str, attempt: int) -> ErrorRecord:
    """Turn an operation failure into an ErrorRecord.

    Status code, error kind and endpoint are read from the exception when it
    carries them (``TargetServiceError`` does); anything else is UNKNOWN.
    """
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        status_code = None
    error_type = getattr(exc, "error_type", None) or UNKNOWN_ERROR_TYPE

    context: dict[str, Any] = {"action_type": action_name, "attempt": attempt}
    details = getattr(exc, "details", None)
    if isinstance(details, dict) and "network_error" in details:
        context["network_error"] = details["network_error"]

    return ErrorRecord(
        type=str(error_type),
        severity=classify_severity(status_code),
        message=str(exc) or type(exc).__name__,
        stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        endpoint=getattr(exc, "endpoint", None),
        status_code=status_code,
        context=context,
    )
