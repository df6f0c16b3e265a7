"""Durable storage of run, agent and error records."""

from betasim.storage.run_store import JsonRunStore, RunStore, StoredRun

__all__ = ["JsonRunStore", "RunStore", "StoredRun"]
