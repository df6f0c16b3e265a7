from __future__ import annotations

import json
import logging
import sys
from typing import Any

from .interface import Logger

_FORMAT = "[%(asctime)s] [%(name)s] %(levelname)s: %(message)s"


class ConsoleLogger(Logger):
    """Logger backed by the standard ``logging`` module, writing to stderr.

    Keyword context is rendered as compact JSON after the message, e.g.::

        [2026-01-01 10:00:00,000] [betasim.agent.lumina_agent_1] INFO: agent.action_ok {"attempts": 1}
    """

    def __init__(self, name: str = "betasim", level: int = logging.INFO) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(_FORMAT))
            self._logger.addHandler(handler)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def level(self) -> int:
        return self._logger.level

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        # Call sites pass the event name as both message and "event".
        context = {k: v for k, v in context.items() if not (k == "event" and v == message)}
        if context:
            message = f"{message} {json.dumps(context, default=str, sort_keys=True)}"
        self._logger.log(level, message)
