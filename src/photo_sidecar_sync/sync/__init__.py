"""Sync CLI: generate, reconcile and replicate XMP sidecars."""

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from photo_sidecar_sync.config import SyncSettings


def main() -> None:
    """CLI entry point for sidecar sync operations."""
    parser = argparse.ArgumentParser(description="XMP sidecar sync")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command")

    # extract
    ex_parser = subparsers.add_parser(
        "extract", help="Write sidecars for images found in the catalog"
    )
    ex_parser.add_argument("--root", type=Path, help="Image tree (or set SOURCE_ROOT in .env)")
    ex_parser.add_argument(
        "--overwrite", action="store_true", help="Regenerate sidecars that already exist"
    )
    ex_parser.add_argument("--dry-run", action="store_true", help="Do everything but write")
    ex_parser.add_argument("--verbose", action="store_true", help="Also list skipped files")

    # sync
    sync_parser = subparsers.add_parser(
        "sync", help="Reconcile sidecars with the desktop tool's annotations"
    )
    sync_parser.add_argument("--root", type=Path, help="Image tree (or set SOURCE_ROOT in .env)")
    sync_parser.add_argument(
        "--from-catalog",
        action="store_true",
        help="Render sidecars from catalog metadata instead of stripping annotations",
    )
    sync_parser.add_argument("--dry-run", action="store_true", help="Do everything but write")
    sync_parser.add_argument("--verbose", action="store_true", help="Also list skipped files")

    # inbox
    inbox_parser = subparsers.add_parser(
        "inbox", help="Copy images created since the last pass into the inbox"
    )
    inbox_parser.add_argument("--root", type=Path, help="Image tree (or set SOURCE_ROOT in .env)")
    inbox_parser.add_argument(
        "--destination", type=Path, help="Inbox folder (or set INBOX_ROOT in .env)"
    )
    inbox_parser.add_argument(
        "--since", type=_parse_timestamp, help="ISO timestamp overriding the stored cursor"
    )
    inbox_parser.add_argument(
        "--scan-library", metavar="LIBRARY_ID", help="Trigger a catalog library scan afterwards"
    )
    inbox_parser.add_argument("--dry-run", action="store_true", help="List without copying")
    inbox_parser.add_argument("--verbose", action="store_true", help="Also list skipped files")

    # cursor
    cursor_parser = subparsers.add_parser("cursor", help="Show or change the inbox cursor")
    group = cursor_parser.add_mutually_exclusive_group()
    group.add_argument("--set", dest="set_to", type=_parse_timestamp, help="ISO timestamp")
    group.add_argument("--reset", action="store_true", help="Forget the cursor")

    # history
    hist_parser = subparsers.add_parser("history", help="List recent passes")
    hist_parser.add_argument("--kind", choices=["extract", "sync", "inbox"], help="Filter by kind")
    hist_parser.add_argument("--limit", type=int, default=20, help="Max rows (default: 20)")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    _setup_logging(args.log_level)

    try:
        settings = SyncSettings.from_env()
        if args.command == "extract":
            _cmd_extract(args, settings)
        elif args.command == "sync":
            _cmd_sync(args, settings)
        elif args.command == "inbox":
            _cmd_inbox(args, settings)
        elif args.command == "cursor":
            _cmd_cursor(args, settings)
        elif args.command == "history":
            _cmd_history(args, settings)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(1)


def _setup_logging(level: str) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as local time."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Not an ISO timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed.astimezone(UTC)


def _build_sidecar_builder(settings: SyncSettings):
    from photo_sidecar_sync.catalog.client import CatalogClient
    from photo_sidecar_sync.catalog.extractor import MetadataExtractor
    from photo_sidecar_sync.catalog.resolver import ChecksumResolver
    from photo_sidecar_sync.sync.extraction import CatalogSidecarBuilder

    client = CatalogClient.from_settings(settings)
    return CatalogSidecarBuilder(
        ChecksumResolver(client, settings.device_id),
        MetadataExtractor(client),
    )


def _record_run(settings: SyncSettings, kind: str, root: Path, started_at, summary, dry_run):
    from photo_sidecar_sync.db import get_connection
    from photo_sidecar_sync.models import SyncRun
    from photo_sidecar_sync.sync.repository import record_run

    conn = get_connection(str(settings.state_db_path))
    record_run(
        conn,
        SyncRun(
            id=None,
            kind=kind,
            root=str(root),
            started_at=started_at,
            finished_at=datetime.now(UTC),
            dry_run=dry_run,
            cancelled=summary.cancelled,
            counts=summary.as_dict(),
        ),
    )
    conn.close()


def _cmd_extract(args: argparse.Namespace, settings: SyncSettings) -> None:
    """Write sidecars for images that resolve to catalog assets."""
    from rich.console import Console

    from photo_sidecar_sync.sync.extraction import ExtractionEngine
    from photo_sidecar_sync.sync.reporting import (
        CancelFlag,
        EventPrinter,
        make_progress,
        summary_table,
    )

    root = args.root or settings.require_source_root()
    dry_run = args.dry_run or settings.dry_run
    builder = _build_sidecar_builder(settings)
    started_at = datetime.now(UTC)

    with CancelFlag() as cancel, make_progress() as progress:
        engine = ExtractionEngine(
            builder,
            settings.image_extensions,
            dry_run=dry_run,
            overwrite=args.overwrite,
            should_cancel=cancel,
        )
        images = engine.collect(root)
        task = progress.add_task("Extracting sidecars", total=len(images))
        engine.on_event = EventPrinter(progress, task, verbose=args.verbose)
        summary = engine.run(root, images)

    Console().print(summary_table("Extraction", summary))
    _record_run(settings, "extract", root, started_at, summary, dry_run)


def _cmd_sync(args: argparse.Namespace, settings: SyncSettings) -> None:
    """Reconcile sidecars with source annotations."""
    from rich.console import Console

    from photo_sidecar_sync.sync.differential import (
        CatalogRenderProducer,
        DifferentialSyncEngine,
        StrippedAnnotationProducer,
    )
    from photo_sidecar_sync.sync.reporting import (
        CancelFlag,
        EventPrinter,
        make_progress,
        summary_table,
    )

    root = args.root or settings.require_source_root()
    dry_run = args.dry_run or settings.dry_run

    if args.from_catalog:
        producer = CatalogRenderProducer(_build_sidecar_builder(settings))
    else:
        from photo_sidecar_sync.sidecar.stripper import ExifToolTagStripper

        producer = StrippedAnnotationProducer(
            ExifToolTagStripper(settings.exiftool_path, settings.stripped_groups)
        )
    started_at = datetime.now(UTC)

    with CancelFlag() as cancel, make_progress() as progress:
        engine = DifferentialSyncEngine(
            root,
            producer,
            settings.image_extensions,
            dry_run=dry_run,
            should_cancel=cancel,
        )
        scan = engine.scan()
        total = len(scan.conflicts) + len(scan.matched) + len(scan.orphans())
        task = progress.add_task("Syncing sidecars", total=total)
        engine.on_event = EventPrinter(progress, task, verbose=args.verbose)
        summary = engine.run(scan)

    Console().print(summary_table("Differential sync", summary))
    _record_run(settings, "sync", root, started_at, summary, dry_run)


def _cmd_inbox(args: argparse.Namespace, settings: SyncSettings) -> None:
    """Copy newly created images into the inbox and advance the cursor."""
    from rich.console import Console

    from photo_sidecar_sync.db import get_connection
    from photo_sidecar_sync.models import sidecar_path_for
    from photo_sidecar_sync.sync.inbox import InboxCopyEngine
    from photo_sidecar_sync.sync.reporting import (
        CancelFlag,
        EventPrinter,
        make_progress,
        summary_table,
    )
    from photo_sidecar_sync.sync.repository import get_cursor, set_cursor

    root = args.root or settings.require_source_root()
    destination = args.destination or settings.require_inbox_root()
    dry_run = args.dry_run or settings.dry_run

    conn = get_connection(str(settings.state_db_path))
    cutoff = args.since or get_cursor(conn)
    print(f"Copying images created after {cutoff.isoformat() if cutoff else 'the beginning'}")

    with CancelFlag() as cancel, make_progress() as progress:
        engine = InboxCopyEngine(
            root,
            destination,
            settings.image_extensions,
            batch_size=settings.inbox_batch_size,
            dry_run=dry_run,
            should_cancel=cancel,
        )
        images = engine.select(cutoff)
        total = len(images) + len(engine.unreadable)
        total += sum(1 for p in images if sidecar_path_for(p).exists())
        task = progress.add_task("Copying to inbox", total=total)
        engine.on_event = EventPrinter(progress, task, verbose=args.verbose)
        result = engine.run(cutoff, images)
        started_at = engine.selected_at

    Console().print(summary_table("Inbox copy", result.summary))

    if result.next_cursor is not None:
        set_cursor(conn, result.next_cursor)
        print(f"Cursor advanced to {result.next_cursor.isoformat()}")
    elif not dry_run:
        print("Cursor left unchanged (pass incomplete or had failures).")
    conn.close()
    _record_run(settings, "inbox", root, started_at, result.summary, dry_run)

    if args.scan_library and result.next_cursor is not None:
        from photo_sidecar_sync.catalog.client import CatalogClient, CatalogError

        try:
            CatalogClient.from_settings(settings).scan_library(args.scan_library)
            print(f"Triggered scan of library {args.scan_library}.")
        except CatalogError as e:
            print(f"Error: library scan failed: {e}")


def _cmd_cursor(args: argparse.Namespace, settings: SyncSettings) -> None:
    """Show, set or reset the inbox cursor."""
    from photo_sidecar_sync.db import get_connection
    from photo_sidecar_sync.sync.repository import get_cursor, reset_cursor, set_cursor

    conn = get_connection(str(settings.state_db_path))
    if args.reset:
        reset_cursor(conn)
        print("Cursor reset; the next inbox pass copies everything.")
    elif args.set_to is not None:
        set_cursor(conn, args.set_to)
        print(f"Cursor set to {args.set_to.isoformat()}")
    else:
        cursor = get_cursor(conn)
        print(f"Cursor: {cursor.isoformat() if cursor else '(none)'}")
    conn.close()


def _cmd_history(args: argparse.Namespace, settings: SyncSettings) -> None:
    """List recent passes."""
    from photo_sidecar_sync.db import get_connection
    from photo_sidecar_sync.sync.repository import list_runs

    conn = get_connection(str(settings.state_db_path))
    runs = list_runs(conn, kind=args.kind, limit=args.limit)
    conn.close()
    for run in runs:
        flags = " dry-run" if run.dry_run else ""
        flags += " cancelled" if run.cancelled else ""
        total = sum(run.counts.values())
        print(f"[{run.started_at:%Y-%m-%d %H:%M:%S}] {run.kind:<7} {total:>6} items{flags}  {run.root}")
