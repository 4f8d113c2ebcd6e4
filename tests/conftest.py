import sqlite3
from pathlib import Path

import pytest

import database

LEGACY_SCHEMA = """
    CREATE TABLE activities (
        id INTEGER PRIMARY KEY,
        group_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        added_when TEXT NOT NULL,
        is_activated INTEGER NOT NULL,
        hours_total REAL NOT NULL
    );

    CREATE TABLE history (
        id_activity INTEGER NOT NULL,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        day INTEGER NOT NULL,
        weeknumber INTEGER NOT NULL,
        hours_on_day REAL NOT NULL,
        date TEXT NOT NULL
    );
"""

SAMPLE_ACTIVITIES = [
    (1, 9, "Coding", "2020-01-01", 1, 10.333333333),
    (4, 9, "Reading", "2020-02-11", 0, 1.1 + 2.2),
]

SAMPLE_HISTORY = [
    (1, 2018, 12, 31, 1, 2.0000005, "2018-12-31"),
    (1, 2018, 1, 1, 1, 1.5, "2018-01-01"),
    (4, 2021, 1, 1, 53, 0.25, "2021-01-01"),
]


def build_legacy_database(path: Path, activities=SAMPLE_ACTIVITIES, history=SAMPLE_HISTORY,
                          schema: str = LEGACY_SCHEMA) -> Path:
    conn = sqlite3.connect(path)
    try:
        conn.executescript(schema)
        conn.executemany(
            "INSERT INTO activities (id, group_id, name, added_when, is_activated, hours_total) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            activities,
        )
        conn.executemany(
            "INSERT INTO history (id_activity, year, month, day, weeknumber, hours_on_day, date) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            history,
        )
        conn.commit()
    finally:
        conn.close()
    return path


def build_destination_database(path: Path) -> Path:
    conn = database.get_db_connection(path)
    try:
        with database.transaction(conn):
            database.ensure_schema(conn)
    finally:
        conn.close()
    return path


@pytest.fixture()
def legacy_db(tmp_path):
    return build_legacy_database(tmp_path / "legacy_productivity.db")


@pytest.fixture()
def destination_dir(tmp_path):
    return tmp_path / "config" / "timetracker"
