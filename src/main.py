# src/main.py — v1
"""CLI entry point — serve, reconcile, status, requeue, mock-api commands.

Usage:
    idsweep serve [--host H] [--port P]
    idsweep reconcile
    idsweep status [--json]
    idsweep requeue [ID ...] [--all]
    idsweep mock-api [--port P] [--seed N]

Ledger location, lookup endpoint and scheduling come from .env / the
environment (see config/settings.py); --data-dir and --concurrency override.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from idsweep.config.settings import ConfigurationError, Settings, load_settings
from idsweep.logging.logger import setup_logging
from idsweep.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else "INFO", log_format="text")

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except (ConfigurationError, ValidationError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="idsweep",
        description=f"idsweep v{__version__} - resumable identifier lookup processor",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-d", "--data-dir", type=Path, default=None,
        help="Directory holding the ledger files (default: DATA_DIR or .)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser(
        "serve", help="Run the processor with its control server",
    )
    p_serve.add_argument("--host", default=None, help="Bind address (default: HOST)")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default: PORT)")
    p_serve.add_argument(
        "--concurrency", type=int, default=None,
        help="Lookups per batch (default: CONCURRENCY)",
    )
    p_serve.set_defaults(func=_cmd_serve)

    # --- reconcile ---
    p_reconcile = subparsers.add_parser(
        "reconcile", help="Rebuild the remaining snapshot from the ledgers",
    )
    p_reconcile.set_defaults(func=_cmd_reconcile)

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Show ledger-derived progress",
    )
    p_status.add_argument(
        "--json", action="store_true", help="Print the full snapshot as JSON",
    )
    p_status.set_defaults(func=_cmd_status)

    # --- requeue ---
    p_requeue = subparsers.add_parser(
        "requeue",
        help="Remove identifiers from the failed ledger so the next run retries them",
    )
    p_requeue.add_argument("ids", nargs="*", help="Identifiers to requeue")
    p_requeue.add_argument(
        "--all", action="store_true", help="Requeue every failed identifier",
    )
    p_requeue.set_defaults(func=_cmd_requeue)

    # --- mock-api ---
    p_mock = subparsers.add_parser(
        "mock-api", help="Run a mock lookup service for local testing",
    )
    p_mock.add_argument("--host", default="127.0.0.1")
    p_mock.add_argument("--port", type=int, default=3000)
    p_mock.add_argument("--seed", type=int, default=None)
    p_mock.set_defaults(func=_cmd_mock_api)

    return parser


def _load(args: argparse.Namespace, **extra: object) -> Settings:
    """Load settings, apply CLI overrides and reconfigure logging."""
    overrides: dict[str, object] = {k: v for k, v in extra.items() if v is not None}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    settings = load_settings(**overrides)
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    return settings


async def _cmd_serve(args: argparse.Namespace) -> int:
    """Run the processing loop and the control server until interrupted."""
    import uvicorn

    from idsweep.api.app import create_app
    from idsweep.api.facade import build_processor

    settings = _load(args, concurrency=args.concurrency)
    processor = build_processor(settings)
    app = create_app(processor)

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Control server: http://%s:%d", host, port)
    config = uvicorn.Config(app, host=host, port=port, log_config=None)
    await uvicorn.Server(config).serve()
    return 0


async def _cmd_reconcile(args: argparse.Namespace) -> int:
    """Rebuild remaining = input - done - failed and print counts."""
    from idsweep.ledger.reconciler import Reconciler
    from idsweep.ledger.store import LedgerStore

    settings = _load(args)
    ledger = LedgerStore(settings.ledger_paths())
    remaining = await Reconciler(ledger).reconcile()

    print(f"\nReconciled {settings.ledger_paths().remaining_file}:")
    print(f"  Remaining:  {len(remaining)}")
    return 0


async def _cmd_status(args: argparse.Namespace) -> int:
    """Print progress derived from the ledger files."""
    from idsweep.ledger.store import LedgerStore
    from idsweep.processing.state import RunState
    from idsweep.tracking.progress import ProgressReporter

    settings = _load(args)
    reporter = ProgressReporter(LedgerStore(settings.ledger_paths()), RunState())
    snap = await reporter.snapshot()

    if args.json:
        print(json.dumps(snap.model_dump(mode="json"), indent=2))
        return 0

    print(f"\nProgress for {settings.data_dir}:")
    print(f"  Total:      {snap.total_ids}")
    print(f"  Done:       {snap.done_count}")
    print(f"  Failed:     {snap.failed_count}")
    print(f"  Remaining:  {snap.remaining_count}")
    print(f"  Progress:   {snap.progress_pct}%")
    for entry in snap.failed_details[:10]:
        print(f"    - {entry.id}: {entry.status} {entry.message or ''}".rstrip())
    if len(snap.failed_details) > 10:
        print(f"    ... and {len(snap.failed_details) - 10} more")
    return 0


async def _cmd_requeue(args: argparse.Namespace) -> int:
    """Operator recovery: move failed identifiers back into the work queue."""
    from idsweep.ledger.reconciler import Reconciler
    from idsweep.ledger.store import LedgerStore

    if not args.all and not args.ids:
        logger.error("Pass identifiers to requeue, or --all")
        return 1

    settings = _load(args)
    ledger = LedgerStore(settings.ledger_paths())
    removed = await ledger.remove_failed(None if args.all else args.ids)
    remaining = await Reconciler(ledger).reconcile()

    print(f"\nRequeued {len(removed)} identifiers ({len(remaining)} now remaining)")
    return 0


async def _cmd_mock_api(args: argparse.Namespace) -> int:
    """Serve the mock lookup endpoint."""
    import uvicorn

    from idsweep.api.mock_service import create_mock_app

    app = create_mock_app(seed=args.seed)
    logger.info("Mock API running on http://%s:%d", args.host, args.port)
    config = uvicorn.Config(app, host=args.host, port=args.port, log_config=None)
    await uvicorn.Server(config).serve()
    return 0


if __name__ == "__main__":
    sys.exit(main())
