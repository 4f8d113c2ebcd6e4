"""Read-only access to the legacy timetracker database.

The legacy layout is fixed: an ``activities`` table and a ``history`` table
with the columns listed in :data:`LEGACY_ACTIVITY_COLUMNS` and
:data:`LEGACY_HISTORY_COLUMNS`.  The file is opened through a ``mode=ro`` URI
so nothing done here can modify it.  Before any row is extracted the schema
is checked against those column lists; a database that drifted from that
shape is rejected instead of being read positionally.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple, TypeVar

from .errors import SchemaMismatchError, StoreAccessError
from .mapping import LegacyActivity, LegacyHistoryEntry

LOGGER = logging.getLogger(__name__)

LEGACY_ACTIVITIES_TABLE = "activities"
LEGACY_HISTORY_TABLE = "history"

LEGACY_ACTIVITY_COLUMNS: Tuple[str, ...] = (
    "id",
    "group_id",
    "name",
    "added_when",
    "is_activated",
    "hours_total",
)
LEGACY_HISTORY_COLUMNS: Tuple[str, ...] = (
    "id_activity",
    "year",
    "month",
    "day",
    "weeknumber",
    "hours_on_day",
    "date",
)

_T = TypeVar("_T")


@dataclass
class LegacySnapshot:
    """Both legacy tables, fully materialised."""

    source: Path
    activities: List[LegacyActivity] = field(default_factory=list)
    history: List[LegacyHistoryEntry] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def open_legacy_store(path: Path) -> sqlite3.Connection:
    """Open *path* read-only, failing fast when it is not a usable database."""

    path = Path(path).expanduser()
    if not path.is_file():
        raise StoreAccessError(f"Legacy database '{path}' does not exist or is not a file")

    try:
        connection = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as exc:
        raise StoreAccessError(f"Could not open legacy database '{path}': {exc}") from exc

    try:
        # sqlite only validates the file header on first access
        connection.execute("SELECT name FROM sqlite_master LIMIT 1").fetchall()
    except sqlite3.Error as exc:
        connection.close()
        raise StoreAccessError(f"'{path}' is not a readable SQLite database: {exc}") from exc

    connection.row_factory = sqlite3.Row
    LOGGER.info("Opened legacy database %s read-only", path)
    return connection


def check_legacy_schema(conn: sqlite3.Connection) -> None:
    """Ensure both legacy tables exist and carry every expected column."""

    for table, expected in (
        (LEGACY_ACTIVITIES_TABLE, LEGACY_ACTIVITY_COLUMNS),
        (LEGACY_HISTORY_TABLE, LEGACY_HISTORY_COLUMNS),
    ):
        present = _table_columns(conn, table)
        if not present:
            raise SchemaMismatchError(f"Legacy table '{table}' is missing")
        missing = [column for column in expected if column not in present]
        if missing:
            raise SchemaMismatchError(
                f"Legacy table '{table}' is missing columns: {', '.join(missing)}"
            )


def read_activities(conn: sqlite3.Connection) -> List[LegacyActivity]:
    return _read_table(conn, LEGACY_ACTIVITIES_TABLE, LEGACY_ACTIVITY_COLUMNS, _activity_from_row)


def read_history(conn: sqlite3.Connection) -> List[LegacyHistoryEntry]:
    return _read_table(conn, LEGACY_HISTORY_TABLE, LEGACY_HISTORY_COLUMNS, _history_from_row)


def read_legacy_store(path: Path) -> LegacySnapshot:
    """Extract activities and history from the legacy database at *path*.

    The connection is closed before returning, so callers never hold the
    legacy file open while writing the destination.
    """

    path = Path(path).expanduser()
    connection = open_legacy_store(path)
    try:
        check_legacy_schema(connection)
        activities = read_activities(connection)
        history = read_history(connection)
    finally:
        connection.close()

    LOGGER.info(
        "Read %d activities and %d history rows from %s",
        len(activities),
        len(history),
        path,
    )
    return LegacySnapshot(source=path, activities=activities, history=history)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    try:
        cursor = conn.execute(f'PRAGMA table_info("{table}")')
    except sqlite3.Error as exc:
        raise StoreAccessError(f"Failed to inspect legacy table {table}: {exc}") from exc
    return [row[1] for row in cursor.fetchall()]


def _read_table(
    conn: sqlite3.Connection,
    table: str,
    columns: Sequence[str],
    build: Callable[[Dict[str, Any]], _T],
) -> List[_T]:
    column_list = ", ".join(f'"{column}"' for column in columns)
    try:
        cursor = conn.execute(f'SELECT {column_list} FROM "{table}"')
        rows = cursor.fetchall()
    except sqlite3.Error as exc:
        raise StoreAccessError(f"Failed to read legacy table {table}: {exc}") from exc

    records: List[_T] = []
    for index, row in enumerate(rows):
        values = {column: row[column] for column in columns}
        try:
            records.append(build(values))
        except (TypeError, ValueError) as exc:
            raise SchemaMismatchError(
                f"Row {index} of legacy table '{table}' has unexpected values: {exc}"
            ) from exc
    LOGGER.debug("Read %d rows from legacy table %s", len(records), table)
    return records


def _integer(values: Dict[str, Any], column: str) -> int:
    value = values[column]
    if value is None:
        raise ValueError(f"column '{column}' is NULL")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"column '{column}' holds non-integer {value!r}")
        return int(value)
    if isinstance(value, bytes):
        raise TypeError(f"column '{column}' holds a blob")
    return int(value)


def _real(values: Dict[str, Any], column: str) -> float:
    value = values[column]
    if value is None:
        raise ValueError(f"column '{column}' is NULL")
    if isinstance(value, bytes):
        raise TypeError(f"column '{column}' holds a blob")
    return float(value)


def _text(values: Dict[str, Any], column: str) -> str:
    value = values[column]
    if value is None:
        raise ValueError(f"column '{column}' is NULL")
    if not isinstance(value, str):
        raise TypeError(f"column '{column}' holds {type(value).__name__}, expected text")
    return value


def _activity_from_row(values: Dict[str, Any]) -> LegacyActivity:
    return LegacyActivity(
        id=_integer(values, "id"),
        group_id=_integer(values, "group_id"),
        name=_text(values, "name"),
        added_when=_text(values, "added_when"),
        is_activated=_integer(values, "is_activated"),
        hours_total=_real(values, "hours_total"),
    )


def _history_from_row(values: Dict[str, Any]) -> LegacyHistoryEntry:
    return LegacyHistoryEntry(
        id_activity=_integer(values, "id_activity"),
        year=_integer(values, "year"),
        month=_integer(values, "month"),
        day=_integer(values, "day"),
        weeknumber=_integer(values, "weeknumber"),
        hours_on_day=_real(values, "hours_on_day"),
        date=_text(values, "date"),
    )
