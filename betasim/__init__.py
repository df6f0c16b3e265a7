"""Synthetic beta-user engine.

Drives persona-based agent flows against target web services, absorbs
transient failures, measures timing and aggregates results across a run.
"""

from __future__ import annotations

__all__ = []
