from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import Mapping

from betasim.api.report import PASSING_SUCCESS_RATE, build_run_report, render_markdown
from betasim.core.models import PersonaDistribution, RunConfig, SchedulingProfile
from betasim.core.oracle import AnthropicOracle
from betasim.exceptions import ConfigurationError
from betasim.logger import session_logger as logger
from betasim.platforms import PLATFORMS, get_platform
from betasim.platforms.base import Platform
from betasim.scenarios.profiles import build_orchestration_config, run_platform_scenario
from betasim.storage.run_store import JsonRunStore

DATA_DIR_ENV = "BETASIM_DATA_DIR"
ORACLE_KEY_ENV = "ANTHROPIC_API_KEY"
REQUIRED_ENV = (DATA_DIR_ENV, ORACLE_KEY_ENV)

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_RETRIES = 3


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="betasim: simulated beta users against a target platform")
    parser.add_argument(
        "--platform",
        type=str,
        choices=sorted(PLATFORMS),
        default="lumina",
        help="Target platform (default: lumina)",
    )
    profile = parser.add_mutually_exclusive_group()
    profile.add_argument(
        "--parallel",
        action="store_true",
        help="Run agents with bounded concurrency (default 20 agents, 5 at a time)",
    )
    profile.add_argument(
        "--stress",
        action="store_true",
        help="Stress profile (default 50 agents, 10 at a time)",
    )
    parser.add_argument(
        "--agents",
        type=int,
        default=None,
        help="Number of agents (overrides the profile default)",
    )
    parser.add_argument(
        "--concurrent",
        type=int,
        default=None,
        help="Maximum agents in flight (ignored for serial runs)",
    )
    parser.add_argument(
        "--distribution",
        type=str,
        choices=[d.value for d in PersonaDistribution],
        default=PersonaDistribution.CYCLE.value,
        help="Persona mix: cycle through types, or a realistic 30/40/20/10 split",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the run report JSON to this path",
    )
    parser.add_argument(
        "--report",
        type=str,
        default=None,
        help="Write a markdown summary report to this path",
    )
    return parser


def _profile_from_args(args: argparse.Namespace) -> SchedulingProfile:
    if args.stress:
        return SchedulingProfile.STRESS
    if args.parallel:
        return SchedulingProfile.PARALLEL
    return SchedulingProfile.SERIAL


def _env_int(environ: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", {"variable": name}) from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}", {"variable": name})
    return value


def load_run_config_from_env(platform: Platform, environ: Mapping[str, str] | None = None) -> RunConfig:
    """Build a platform's ``RunConfig`` from ``<PREFIX>_*`` and ``BETASIM_*`` variables."""
    env = os.environ if environ is None else environ
    prefix = platform.env_prefix

    base_url = (env.get(f"{prefix}_BASE_URL") or platform.default_base_url).strip()
    if not base_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"{prefix}_BASE_URL must be an http(s) URL, got {base_url!r}",
            {"variable": f"{prefix}_BASE_URL"},
        )

    timeout_ms = _env_int(env, "BETASIM_TIMEOUT_MS", DEFAULT_TIMEOUT_MS, minimum=1)
    max_retries = _env_int(env, "BETASIM_MAX_RETRIES", DEFAULT_MAX_RETRIES, minimum=1)

    return RunConfig(
        platform=platform.name,
        base_url=base_url.rstrip("/"),
        api_key=env.get(f"{prefix}_API_KEY") or None,
        timeout_seconds=timeout_ms / 1000.0,
        max_retries=max_retries,
        detailed_logging=env.get("BETASIM_DETAILED_LOGGING", "").strip().lower() == "true",
    )


def missing_required_env(environ: Mapping[str, str]) -> list[str]:
    return [name for name in REQUIRED_ENV if not environ.get(name)]


def _write_reports(args: argparse.Namespace, report: dict) -> None:
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")
        logger.info("run.report_written", event="run.report_written", path=str(output_path), format="json")

    if args.report:
        report_path = Path(args.report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(render_markdown(report), encoding="utf-8")
        logger.info("run.report_written", event="run.report_written", path=str(report_path), format="markdown")


def main(argv: list[str] | None = None, *, environ: Mapping[str, str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    env = os.environ if environ is None else environ

    missing = missing_required_env(env)
    if missing:
        logger.error(
            "run.missing_env",
            event="run.missing_env",
            missing=missing,
            recovery="Export " + " and ".join(missing) + " before starting a run",
        )
        return 1

    if args.agents is not None and args.agents < 0:
        logger.error("run.invalid_agents", event="run.invalid_agents", provided=args.agents, recovery="Provide --agents >= 0")
        return 2
    if args.concurrent is not None and args.concurrent < 1:
        logger.error(
            "run.invalid_concurrent",
            event="run.invalid_concurrent",
            provided=args.concurrent,
            recovery="Provide --concurrent >= 1",
        )
        return 2

    platform = get_platform(args.platform)
    try:
        run_config = load_run_config_from_env(platform, env)
    except ConfigurationError as exc:
        logger.error("run.invalid_config", event="run.invalid_config", error=exc.message, **exc.details)
        return 1

    config = build_orchestration_config(
        _profile_from_args(args),
        run_config=run_config,
        agents=args.agents,
        concurrent=args.concurrent,
        distribution=PersonaDistribution(args.distribution),
    )

    logger.info(
        "run.start",
        event="run.start",
        platform=platform.display_name,
        profile=config.profile.value,
        agents=config.agent_count,
        max_concurrent=config.effective_concurrency,
        base_url=run_config.base_url,
    )

    store = JsonRunStore(env[DATA_DIR_ENV])
    oracle = AnthropicOracle(api_key=env[ORACLE_KEY_ENV])

    try:
        result = asyncio.run(run_platform_scenario(platform, config, oracle=oracle, store=store, logger=logger))
    except Exception as exc:
        logger.error(
            "run.fatal",
            event="run.fatal",
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return 1

    _write_reports(args, build_run_report(config, result))

    logger.info(
        "run.summary",
        event="run.summary",
        run_id=result.run_id,
        total_agents=result.total_agents,
        completed_agents=result.completed_agents,
        failed_agents=result.failed_agents,
        success_rate=round(result.success_rate, 2),
        duration_seconds=round(result.duration_seconds, 2),
        avg_response_time_ms=result.aggregates.avg_response_time_ms,
        throughput_rps=result.throughput_rps,
    )

    return 0 if result.success_rate >= PASSING_SUCCESS_RATE else 1


if __name__ == "__main__":
    raise SystemExit(main())
