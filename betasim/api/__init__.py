"""Run reports: JSON payloads and markdown summaries."""

from __future__ import annotations

__all__ = ["build_run_report", "recommendations", "render_markdown"]

from betasim.api.report import build_run_report, recommendations, render_markdown
