import contextlib
import logging
import sqlite3
from typing import Dict, Iterator

from services.errors import StoreAccessError, UniqueConstraintError
from services.mapping import NewActivity, NewHistoryEntry

logger = logging.getLogger(__name__)

DATABASE_FILENAME = 'productivity.db'

ACTIVITIES_TABLE = 'tt_activities'
HISTORY_TABLE = 'tt_history'

ACTIVITIES_DDL = """
    CREATE TABLE IF NOT EXISTS tt_activities (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        added TEXT NOT NULL,
        isactive INTEGER NOT NULL DEFAULT 1,
        hourstotal NUMERIC NOT NULL DEFAULT 0.0
    );
"""

HISTORY_DDL = """
    CREATE TABLE IF NOT EXISTS tt_history (
        id INTEGER NOT NULL,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        day INTEGER NOT NULL,
        isoweek INTEGER NOT NULL,
        isoweekyear INTEGER NOT NULL,
        hoursonday NUMERIC NOT NULL DEFAULT 0.0,
        date TEXT NOT NULL,
        FOREIGN KEY (id) REFERENCES tt_activities (id)
    );
"""


def get_db_connection(path):
    """Opens the destination database, creating the file if needed.

    The connection runs in autocommit mode; callers group their writes with
    :func:`transaction`.
    """
    try:
        conn = sqlite3.connect(str(path), timeout=30.0, isolation_level=None)
    except sqlite3.Error as e:
        raise StoreAccessError(f"Could not open destination database '{path}': {e}") from e
    try:
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute("PRAGMA temp_store=MEMORY;")
    except sqlite3.Error as e:
        logger.warning(f"Could not set PRAGMA settings: {e}")
    conn.row_factory = sqlite3.Row
    return conn


def _rollback_quietly(conn: sqlite3.Connection) -> None:
    # The caller re-raises the original error; a failed ROLLBACK must not replace it.
    try:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
    except sqlite3.Error as e:
        logger.error("Rollback of destination transaction failed: %s", e)
    else:
        logger.warning("Rolled back destination transaction")


@contextlib.contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Runs the enclosed statements, DDL included, as one unit."""
    try:
        conn.execute("BEGIN")
    except sqlite3.Error as e:
        raise StoreAccessError(f"Could not start a transaction: {e}") from e
    try:
        yield conn
    except BaseException:
        _rollback_quietly(conn)
        raise
    else:
        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            _rollback_quietly(conn)
            raise StoreAccessError(f"Could not commit destination changes: {e}") from e


def _table_exists(conn: sqlite3.Connection, table_name: str) -> bool:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table_name,),
    )
    return cursor.fetchone() is not None


def ensure_schema(conn, activities_ddl=ACTIVITIES_DDL, history_ddl=HISTORY_DDL):
    """Creates both destination tables unless they already exist."""
    try:
        conn.execute(activities_ddl)
        conn.execute(history_ddl)
    except sqlite3.Error as e:
        raise StoreAccessError(f"Could not create destination schema: {e}") from e
    logger.info("Destination schema ready.")


def count_rows(conn: sqlite3.Connection) -> Dict[str, int]:
    counts = {}
    try:
        for table in (ACTIVITIES_TABLE, HISTORY_TABLE):
            if _table_exists(conn, table):
                counts[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    except sqlite3.Error as e:
        raise StoreAccessError(f"Could not inspect destination database: {e}") from e
    return counts


def _execute_insert(conn: sqlite3.Connection, table: str, sql: str, params: tuple) -> None:
    try:
        conn.execute(sql, params)
    except sqlite3.IntegrityError as e:
        if 'UNIQUE' in str(e).upper():
            raise UniqueConstraintError(f"Row with id {params[0]} already exists in {table}") from e
        raise StoreAccessError(f"Could not insert into {table}: {e}") from e
    except sqlite3.Error as e:
        raise StoreAccessError(f"Could not insert into {table}: {e}") from e


def insert_activity(conn: sqlite3.Connection, activity: NewActivity) -> None:
    # No upsert: an id that is already present is an error.
    _execute_insert(
        conn,
        ACTIVITIES_TABLE,
        """
        INSERT INTO tt_activities (id, name, added, isactive, hourstotal)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            activity.id,
            activity.name,
            activity.added,
            activity.isactive,
            activity.hourstotal,
        ),
    )


def insert_history(conn: sqlite3.Connection, entry: NewHistoryEntry) -> None:
    _execute_insert(
        conn,
        HISTORY_TABLE,
        """
        INSERT INTO tt_history (id, year, month, day, isoweek, isoweekyear, hoursonday, date)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            entry.id,
            entry.year,
            entry.month,
            entry.day,
            entry.isoweek,
            entry.isoweekyear,
            entry.hoursonday,
            entry.date,
        ),
    )

