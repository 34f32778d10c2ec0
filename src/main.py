# src/main.py — v2
"""CLI entry point: serve, runs, inspect, rerun, echoes commands.

Usage:
    loretech [serve]
    loretech runs [--limit N]
    loretech inspect <run_id> [artifact]
    loretech rerun <run_id> --from-step STEP [--context TEXT]
    loretech echoes
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from loretech.api.facade import ToolFacade
from loretech.api.models import ToolResult
from loretech.config.settings import ConfigurationError, Settings, load_settings
from loretech.logging.logger import setup_logging
from loretech.pipeline.replay import REPLAYABLE_STEPS
from loretech.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)
    func = getattr(args, "func", _cmd_serve)

    try:
        return asyncio.run(func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="loretech",
        description=f"loretech v{__version__}: echo tools for host agents",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser(
        "serve", help="Run the MCP server over stdio (default)",
    )
    p_serve.set_defaults(func=_cmd_serve)

    # --- runs ---
    p_runs = subparsers.add_parser("runs", help="List recent runs")
    p_runs.add_argument(
        "--limit", type=int, default=10,
        help="Maximum number of runs to show, 1-50 (default: 10)",
    )
    p_runs.set_defaults(func=_cmd_runs)

    # --- inspect ---
    p_inspect = subparsers.add_parser(
        "inspect", help="List a run's artifacts or print one",
    )
    p_inspect.add_argument("run_id", help="Run ID")
    p_inspect.add_argument(
        "artifact", nargs="?", default=None,
        help="Artifact filename (omit to list all)",
    )
    p_inspect.set_defaults(func=_cmd_inspect)

    # --- rerun ---
    p_rerun = subparsers.add_parser(
        "rerun", help="Replay a run as a new run",
    )
    p_rerun.add_argument("run_id", help="Run ID to replay")
    p_rerun.add_argument(
        "--from-step", required=True, choices=REPLAYABLE_STEPS,
        help="Step to restart from",
    )
    p_rerun.add_argument(
        "--context", dest="override_context", default=None,
        help="Replacement context (only with --from-step context)",
    )
    p_rerun.set_defaults(func=_cmd_rerun)

    # --- echoes ---
    p_echoes = subparsers.add_parser("echoes", help="List local echoes")
    p_echoes.set_defaults(func=_cmd_echoes)

    return parser


async def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Serve MCP tools on stdio."""
    from loretech.server.mcp_server import serve

    await serve(settings)
    return 0


async def _cmd_runs(args: argparse.Namespace, settings: Settings) -> int:
    facade = ToolFacade.from_settings(settings)
    return _emit(await facade.list_runs(args.limit))


async def _cmd_inspect(args: argparse.Namespace, settings: Settings) -> int:
    facade = ToolFacade.from_settings(settings)
    return _emit(await facade.inspect(args.run_id, args.artifact))


async def _cmd_rerun(args: argparse.Namespace, settings: Settings) -> int:
    """Replay, then wait for background enrichment before exiting."""
    facade = ToolFacade.from_settings(settings)
    result = await facade.rerun(args.run_id, args.from_step, args.override_context)
    if facade.orchestrator.pending_enrichments:
        logger.info("Waiting for dataset enrichment to finish")
    await facade.drain()
    return _emit(result)


async def _cmd_echoes(args: argparse.Namespace, settings: Settings) -> int:
    facade = ToolFacade.from_settings(settings)
    return _emit(await facade.list_echoes())


def _emit(result: ToolResult) -> int:
    stream = sys.stderr if result.is_error else sys.stdout
    print(result.text, file=stream)
    return 1 if result.is_error else 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging from settings; -v forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
