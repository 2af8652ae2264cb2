"""Maintenance CLI for region backup stores."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

from core.config_loader import load_config
from core.logger import configure_logging, get_logger
from persistence.backup_store import BackupStore


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(description="Region backup store maintenance")
    parser.add_argument("--config", type=Path, default=Path("config"), help="Config file or directory.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("regions", help="List regions with an active file.")

    list_parser = commands.add_parser("list", help="List timestamped backups of a region.")
    list_parser.add_argument("region")

    latest_parser = commands.add_parser("latest", help="Show the latest backup written in the last 7 days.")
    latest_parser.add_argument("region")

    inspect_parser = commands.add_parser("inspect", help="Load a region and summarize its snapshot.")
    inspect_parser.add_argument("region")

    restore_parser = commands.add_parser("restore", help="Replace the active file with a backup.")
    restore_parser.add_argument("region")
    restore_parser.add_argument("--file", type=Path, default=None, help="Backup to restore; latest if omitted.")

    prune_parser = commands.add_parser("prune", help="Delete sim backups older than N days.")
    prune_parser.add_argument("--days", type=int, default=None, help="Defaults to ArchiveDays.")
    prune_parser.add_argument("--region", type=str, default=None)

    remove_parser = commands.add_parser("remove", help="Delete the active file of a region.")
    remove_parser.add_argument("region")

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, *, console: Console | None = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)
    configure_logging(
        run_id=config.system.run_id or "unknown",
        environment=config.system.environment.value,
        log_level=config.system.log_level.value,
        log_dir=Path(config.system.log_dir),
    )
    log = get_logger("main")
    console = console or Console()
    store = BackupStore(config.backup, run_id=config.system.run_id or "unknown")

    if args.command == "regions":
        for region in store.list_regions():
            console.print(region)
        return 0

    if args.command == "list":
        backups = store.list_backups(args.region)
        if backups is None:
            console.print(f"Archive directory {store.archive_directory} does not exist")
            return 1
        table = Table(title=f"Backups of {args.region}")
        table.add_column("Timestamp")
        table.add_column("File")
        for record in backups:
            table.add_row(record.timestamp.strftime("%Y-%m-%d %H:%M"), str(record.path))
        console.print(table)
        return 0

    if args.command == "latest":
        latest = store.latest_backup_of(args.region)
        if latest is None:
            console.print(f"No backup of {args.region} in the last 7 days")
            return 1
        console.print(str(latest))
        return 0

    if args.command == "inspect":
        snapshot = store.load_most_recent(args.region)
        info = snapshot.region_info
        table = Table(title=f"Region {args.region}")
        table.add_column("Field")
        table.add_column("Value")
        table.add_row("empty", str(snapshot.is_empty))
        table.add_row("object groups", str(len(snapshot.object_groups)))
        table.add_row("parcels", str(len(snapshot.parcels)))
        table.add_row("terrain bytes", str(len(snapshot.terrain or b"")))
        table.add_row("water bytes", str(len(snapshot.water or b"")))
        if info is not None:
            table.add_row("location", f"{info.location_x},{info.location_y}")
            table.add_row("port", str(info.port) if not info.needs_port else "unset")
        console.print(table)
        return 0

    if args.command == "restore":
        restored = (
            store.restore_from_backup(args.file, args.region)
            if args.file is not None
            else store.restore_last_backup(args.region)
        )
        console.print("Restored" if restored else "Nothing restored")
        return 0 if restored else 1

    if args.command == "prune":
        removed = store.cleanup_backups(args.days, args.region)
        console.print(f"Removed {removed} archive files")
        return 0

    if args.command == "remove":
        existed = store.remove_region(args.region)
        log.info("remove_command_completed", region=args.region, existed=existed)
        console.print("Removed" if existed else "No active file")
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
