from dataclasses import asdict, fields

import pytest

from services.errors import InvalidDateError
from services.mapping import (
    LegacyActivity,
    LegacyHistoryEntry,
    NewActivity,
    NewHistoryEntry,
    map_activity,
    map_history,
)
from services.normalize import resolve_timezone


def test_map_activity_copies_fields_and_rounds_hours():
    legacy = LegacyActivity(
        id=1,
        group_id=9,
        name="Coding",
        added_when="2020-01-01",
        is_activated=1,
        hours_total=10.333333333,
    )

    mapped = map_activity(legacy)

    assert mapped == NewActivity(
        id=1, name="Coding", added="2020-01-01", isactive=1, hourstotal=10.333333
    )


def test_map_activity_drops_group_id():
    mapped = map_activity(LegacyActivity(7, 3, "Gym", "2019-05-05", 0, 0.0))
    assert "group_id" not in asdict(mapped)
    assert {f.name for f in fields(mapped)} == {"id", "name", "added", "isactive", "hourstotal"}
    assert mapped.isactive == 0


def test_map_history_derives_iso_week_year():
    legacy = LegacyHistoryEntry(
        id_activity=1,
        year=2018,
        month=12,
        day=31,
        weeknumber=1,
        hours_on_day=2.0000005,
        date="2018-12-31",
    )

    mapped = map_history(legacy)

    assert mapped == NewHistoryEntry(
        id=1,
        year=2018,
        month=12,
        day=31,
        isoweek=1,
        isoweekyear=2019,
        hoursonday=2.000001,
        date="2018-12-31",
    )


def test_map_history_copies_legacy_week_number_verbatim():
    # A legacy week number that disagrees with ISO is still carried over
    legacy = LegacyHistoryEntry(3, 2018, 12, 31, 52, 1.0, "31.12.2018")

    mapped = map_history(legacy, resolve_timezone("Europe/Berlin"))

    assert mapped.isoweek == 52
    assert mapped.isoweekyear == 2019
    assert mapped.date == "31.12.2018"


def test_map_history_rejects_impossible_dates():
    legacy = LegacyHistoryEntry(1, 2019, 2, 29, 9, 1.0, "2019-02-29")
    with pytest.raises(InvalidDateError):
        map_history(legacy)
