# src/main.py — v2
"""CLI entry point — ingest, backfill, verify, decode commands.

Usage:
    catalog-ingest ingest [--prefix P] [--test]
    catalog-ingest backfill
    catalog-ingest verify
    catalog-ingest decode <key>...
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from catalog_ingest.logging.logger import setup_logging
from catalog_ingest.version import __version__

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
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="catalog-ingest",
        description=f"catalog-ingest v{__version__}: media ingestion and catalog reconciliation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- ingest ---
    p_ingest = subparsers.add_parser(
        "ingest", help="Scan, match and migrate source objects into the library",
    )
    p_ingest.add_argument(
        "--prefix", default=None,
        help="Source prefix to scan (default: SOURCE_PREFIX)",
    )
    p_ingest.add_argument(
        "--test", action="store_true",
        help="Test mode: only process the first few objects",
    )
    p_ingest.set_defaults(func=_cmd_ingest)

    # --- backfill ---
    p_backfill = subparsers.add_parser(
        "backfill", help="Compute missing content hashes for catalog rows",
    )
    p_backfill.set_defaults(func=_cmd_backfill)

    # --- verify ---
    p_verify = subparsers.add_parser(
        "verify", help="Report catalog rows whose object is missing from the destination",
    )
    p_verify.set_defaults(func=_cmd_verify)

    # --- decode ---
    p_decode = subparsers.add_parser(
        "decode", help="Decode canonical object keys",
    )
    p_decode.add_argument("keys", nargs="+", help="Object keys to decode")
    p_decode.set_defaults(func=_cmd_decode)

    return parser


def _load_settings(args: argparse.Namespace):
    """Load settings and re-apply logging configuration from them."""
    from catalog_ingest.config.settings import load_settings

    settings = load_settings()
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    return settings


def _install_cancel_handlers(cancel_event: asyncio.Event) -> None:
    """SIGINT/SIGTERM stop new objects from starting; in-flight ones finish."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers unavailable for %s", sig)


async def _cmd_ingest(args: argparse.Namespace) -> int:
    """Execute a full ingestion run."""
    from catalog_ingest.pipeline.ingest import build_ingestion

    settings = _load_settings(args)
    run = build_ingestion(settings)

    cancel_event = asyncio.Event()
    _install_cancel_handlers(cancel_event)

    prefix = args.prefix if args.prefix is not None else settings.source_prefix
    summary = await run.run(prefix, test_mode=args.test, cancel_event=cancel_event)

    print()
    print(summary.format())
    if cancel_event.is_set():
        return 130
    return 1 if summary.failed else 0


async def _cmd_backfill(args: argparse.Namespace) -> int:
    """Fill in missing full hashes from the destination store."""
    from catalog_ingest.catalog.catalog_factory import create_catalog_store
    from catalog_ingest.catalog.writer import CatalogWriter
    from catalog_ingest.hashing.hasher import ContentHasher
    from catalog_ingest.storage.store_factory import create_object_store

    settings = _load_settings(args)
    writer = CatalogWriter(
        create_catalog_store(settings),
        batch_size=settings.catalog_batch_size,
        timeout_s=settings.catalog_timeout_s,
        backfill_delay_s=settings.backfill_delay_s,
    )
    destination = create_object_store(settings, "destination")
    report = await writer.backfill_missing_hashes(destination, ContentHasher())

    print("\nBackfill complete:")
    print(f"  Selected: {report.selected}")
    print(f"  Updated:  {report.updated}")
    print(f"  Failed:   {report.failed}")
    for key in report.failed_keys:
        print(f"    ! {key}")
    return 1 if report.failed else 0


async def _cmd_verify(args: argparse.Namespace) -> int:
    """Check every catalog row's object key against the destination store."""
    from catalog_ingest.catalog.catalog_factory import create_catalog_store
    from catalog_ingest.catalog.writer import CatalogWriter
    from catalog_ingest.storage.store_factory import create_object_store

    settings = _load_settings(args)
    writer = CatalogWriter(
        create_catalog_store(settings),
        batch_size=settings.catalog_batch_size,
        timeout_s=settings.catalog_timeout_s,
    )
    destination = create_object_store(settings, "destination")
    report = await writer.verify_objects(destination)

    print("\nVerify complete:")
    print(f"  Checked:   {report.checked}")
    print(f"  Present:   {report.present}")
    print(f"  Missing:   {len(report.missing)}")
    for ref in report.missing:
        print(f"    - {ref.track_id}: {ref.object_key}")
    print(f"  Unchecked: {len(report.errors)}")
    for key in report.errors:
        print(f"    ! {key}")
    return 0 if report.clean else 1


async def _cmd_decode(args: argparse.Namespace) -> int:
    """Print the decoded fields of each key."""
    from catalog_ingest.core.models import KeyParseError
    from catalog_ingest.keys.codec import decode_key

    status = 0
    for key in args.keys:
        decoded = decode_key(key)
        if isinstance(decoded, KeyParseError):
            print(f"{key}: unparseable ({decoded.reason})")
            status = 1
            continue
        print(
            f"{key}: track_id={decoded.track_id} version={decoded.version} "
            f"short_hash={decoded.short_hash} ext={decoded.extension}"
        )
    return status


if __name__ == "__main__":
    sys.exit(main())
