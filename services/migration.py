"""Migrate a legacy timetracker database into the current layout."""
from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Sequence

import database
from data_paths import ensure_config_dir, resolve_config_dir

from .errors import MigrationError
from .legacy_reader import read_legacy_store
from .mapping import map_activity, map_history
from .normalize import resolve_timezone

LOGGER = logging.getLogger(__name__)

INTRO_LINES = (
    "Small tool to transition from the old timetracker to the new version",
    "Note:",
    "  a) database names and layouts are fixed to the 0.1.0 release",
    "  b) the legacy database is opened read-only and never modified",
)
PROMPT = (
    "Enter your full db path, eg: /home/user/foo/bar/productivity.db\n"
    "       Your entry          : "
)


@dataclass(frozen=True)
class MigrationConfig:
    """Settings for one migration run."""

    database_filename: str = database.DATABASE_FILENAME
    destination_dir: Optional[Path] = None
    activities_ddl: str = database.ACTIVITIES_DDL
    history_ddl: str = database.HISTORY_DDL
    timezone: Optional[str] = None


@dataclass(frozen=True)
class DestinationPlan:
    directory: Path
    database_path: Path
    directory_existed: bool
    database_existed: bool


@dataclass(frozen=True)
class MigrationResult:
    """Structured results returned by :func:`perform_migration`."""

    source: Path
    destination: Path
    destination_existed: bool
    activities: int
    history: int
    existing_rows: Dict[str, int] = field(default_factory=dict)


def plan_destination(config: Optional[MigrationConfig] = None) -> DestinationPlan:
    config = config or MigrationConfig()
    directory = Path(config.destination_dir) if config.destination_dir else resolve_config_dir()
    database_path = directory / config.database_filename
    return DestinationPlan(
        directory=directory,
        database_path=database_path,
        directory_existed=directory.is_dir(),
        database_existed=database_path.exists(),
    )


def perform_migration(
    legacy_path: Path,
    config: Optional[MigrationConfig] = None,
) -> MigrationResult:
    """Copy every legacy activity and history row into the destination database.

    Both legacy tables are read and mapped before the destination is touched.
    All destination work, schema creation included, runs in one transaction:
    any failure rolls it back and the destination is left as it was.  A
    destination database file created by this run is removed again on failure.
    """

    config = config or MigrationConfig()
    zone = resolve_timezone(config.timezone)
    plan = plan_destination(config)

    snapshot = read_legacy_store(legacy_path)
    activities = [map_activity(entry) for entry in snapshot.activities]
    history = [map_history(entry, zone) for entry in snapshot.history]

    ensure_config_dir(plan.directory)

    try:
        conn = database.get_db_connection(plan.database_path)
        try:
            existing_rows = database.count_rows(conn) if plan.database_existed else {}
            with database.transaction(conn):
                database.ensure_schema(conn, config.activities_ddl, config.history_ddl)
                for activity in activities:
                    database.insert_activity(conn, activity)
                LOGGER.info("Inserted %d activities", len(activities))
                for entry in history:
                    database.insert_history(conn, entry)
                LOGGER.info("Inserted %d history rows", len(history))
        finally:
            conn.close()
    except MigrationError:
        if not plan.database_existed:
            _discard_new_database(plan.database_path)
        raise

    LOGGER.info("Migration into %s complete", plan.database_path)
    return MigrationResult(
        source=snapshot.source,
        destination=plan.database_path,
        destination_existed=plan.database_existed,
        activities=len(activities),
        history=len(history),
        existing_rows=existing_rows,
    )


def _discard_new_database(path: Path) -> None:
    for candidate in (path, path.with_name(path.name + "-journal")):
        try:
            candidate.unlink(missing_ok=True)
        except OSError as exc:  # pragma: no cover - best effort cleanup
            LOGGER.warning("Could not remove %s: %s", candidate, exc)


def _prompt_for_legacy_path() -> Optional[str]:
    try:
        answer = input(PROMPT)
    except EOFError:
        return None
    return answer.strip() or None


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry-point used by ``migrate.py``."""

    parser = argparse.ArgumentParser(
        description="Migrate a legacy timetracker database into the current layout."
    )
    parser.add_argument(
        "legacy_db",
        nargs="?",
        help="Path to the legacy database (prompted for when omitted)",
    )
    parser.add_argument(
        "--destination-dir",
        type=Path,
        default=None,
        help="Directory holding the new database (default: the OS configuration directory)",
    )
    parser.add_argument(
        "--timezone",
        default=None,
        help="Olson time zone used to place history dates (default: local zone)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    for line in INTRO_LINES:
        print(line)

    legacy_db = args.legacy_db.strip() if args.legacy_db else _prompt_for_legacy_path()
    if not legacy_db:
        print("No legacy database path given.")
        return 1

    config = MigrationConfig(destination_dir=args.destination_dir, timezone=args.timezone)
    plan = plan_destination(config)
    print()
    if not plan.directory_existed:
        print(f"folder  doesn't exist, creating: {plan.directory}")
    if not plan.database_existed:
        print(f"db file doesn't exist, creating: {plan.database_path}")
    else:
        print(f"db already exists at {plan.database_path}")
        print("NOTE: the new db will be updated with values from the old one!")
        print("MAKE SURE YOUR DB IS PROPERLY BACKED UP BEFORE THIS!")

    try:
        result = perform_migration(Path(legacy_db), config)
    except MigrationError as exc:
        print(f"Migration failed: {exc}")
        print("The destination database was left unchanged.")
        return 1

    print("Migration completed successfully.")
    print(f"Source: {result.source}")
    print(f"Destination: {result.destination}")
    print(f"Activities migrated: {result.activities}")
    print(f"History rows migrated: {result.history}")
    if result.existing_rows:
        summary = ", ".join(f"{name} ({count})" for name, count in result.existing_rows.items())
        print(f"Rows already present before migration: {summary}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI behavior
    raise SystemExit(main())
