"""Logger module for betasim

Usage:
    from betasim.logger import Logger, ConsoleLogger, session_logger

    # Use the shared logger
    session_logger.info("orchestrator.run_start", agents=10)

    # Or give a component its own sink
    logger = ConsoleLogger(name="betasim.agent.lumina_agent_1", level=logging.DEBUG)
"""

import logging

from .console_logger import ConsoleLogger
from .interface import Logger

# Shared logger instance for modules that just need basic console logging
session_logger: Logger = ConsoleLogger(name="betasim", level=logging.INFO)


def agent_logger(agent_name: str, *, detailed: bool = False) -> Logger:
    """Build the per-agent logging sink."""
    return ConsoleLogger(
        name=f"betasim.agent.{agent_name}",
        level=logging.DEBUG if detailed else logging.INFO,
    )


__all__ = [
    "Logger",
    "ConsoleLogger",
    "agent_logger",
    "session_logger",
]
