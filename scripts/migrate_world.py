#!/usr/bin/env python3
"""
Command-line runner for psionic world migrations.

Runs the same versioned migrations as the ``run_migrations`` MCP tool against a
world data directory, without starting the server.

Usage:
    python scripts/migrate_world.py --data-dir psionics_data --backup

The script:
1. Optionally copies the world directory to a timestamped backup
2. Runs every migration between the stored schema version and the target
3. Optionally audits stored powers afterwards

There is no rollback: a failed migration leaves the schema version at the last
successful step and is retried on the next run. Keep the backup until the run
has been checked.
"""

import argparse
import asyncio
import logging
import shutil
import sys
from datetime import datetime
from pathlib import Path

from psionics_migrations.config import installed_version
from psionics_migrations.integrity import audit_world
from psionics_migrations.migrations import MigrationRunner, build_default_registry
from psionics_migrations.storage import WorldStorage


def backup_world(data_dir: Path) -> Path:
    """Copy the world directory next to itself with a timestamp suffix.

    Returns:
        Path of the backup directory
    """
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_dir = data_dir.with_name(f"{data_dir.name}.bak-{stamp}")
    shutil.copytree(data_dir, backup_dir)
    return backup_dir


async def run(args: argparse.Namespace) -> int:
    print(f"{'='*70}")
    print("Psionic World Migration")
    print(f"{'='*70}")
    print(f"Data dir: {args.data_dir}")
    print(f"Target version: {args.version}")
    print(f"Backup: {'Yes' if args.backup else 'No'}")

    if not args.data_dir.exists():
        print(f"\n❌ Data directory not found: {args.data_dir}", file=sys.stderr)
        return 1

    if args.backup:
        backup_dir = backup_world(args.data_dir)
        print(f"  ✓ Backup written to {backup_dir}")

    storage = WorldStorage(args.data_dir)
    runner = MigrationRunner(
        registry=build_default_registry(storage),
        settings=storage.settings,
        current_version=args.version,
    )
    report = await runner.run()

    print(f"\n{'='*70}")
    print(("✅ " if report.ok else "❌ ") + report.summary())
    print(f"{'='*70}")

    if storage.invalid_documents:
        print(f"\n⚠️ {len(storage.invalid_documents)} document(s) could not be loaded:")
        for invalid in storage.invalid_documents:
            print(f"  - {invalid.location}: {invalid.error}")

    if args.audit:
        audits = audit_world(storage)
        problems = [audit for audit in audits if not audit.ok]
        print(f"\nAudit: {len(audits)} power(s), {len(problems)} with problems")
        for audit in problems:
            print(f"  - {audit.name} ({audit.uuid})")

    return 0 if report.ok else 1


def parse_args() -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Run pending psionic schema migrations on a world directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Migrate with a backup copy first
  python scripts/migrate_world.py --data-dir psionics_data --backup

  # Migrate only up to a given version, then audit stored powers
  python scripts/migrate_world.py --version 0.5.0 --audit
        """,
    )

    parser.add_argument(
        "--data-dir",
        default="psionics_data",
        type=Path,
        help="World data directory (default: psionics_data)"
    )
    parser.add_argument(
        "--version",
        default=installed_version(),
        help="Target schema version (default: installed package version)"
    )
    parser.add_argument(
        "--backup",
        action="store_true",
        help="Copy the data directory before migrating"
    )
    parser.add_argument(
        "--audit",
        action="store_true",
        help="Audit stored powers after migrating"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging"
    )

    return parser.parse_args()


def main() -> None:
    """Main entry point for the migration script."""
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
