"""Record types for both schemas and the pure transforms between them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional

from .normalize import iso_week_year, round_to_six_decimals

__all__ = [
    "LegacyActivity",
    "LegacyHistoryEntry",
    "NewActivity",
    "NewHistoryEntry",
    "map_activity",
    "map_history",
]


# ---------------------------------------------------------------------------
# Legacy rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LegacyActivity:
    """One row of the legacy ``activities`` table."""

    id: int
    group_id: int
    name: str
    added_when: str
    is_activated: int
    hours_total: float


@dataclass(frozen=True)
class LegacyHistoryEntry:
    """One row of the legacy ``history`` table."""

    id_activity: int
    year: int
    month: int
    day: int
    weeknumber: int
    hours_on_day: float
    date: str


# ---------------------------------------------------------------------------
# Destination rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewActivity:
    """Insert-ready row for ``tt_activities``."""

    id: int
    name: str
    added: str
    isactive: int
    hourstotal: float = 0.0


@dataclass(frozen=True)
class NewHistoryEntry:
    """Insert-ready row for ``tt_history``."""

    id: int
    year: int
    month: int
    day: int
    isoweek: int
    isoweekyear: int
    hoursonday: float
    date: str


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def map_activity(legacy: LegacyActivity) -> NewActivity:
    # group_id has no counterpart in the new layout
    return NewActivity(
        id=legacy.id,
        name=legacy.name,
        added=legacy.added_when,
        isactive=legacy.is_activated,
        hourstotal=round_to_six_decimals(legacy.hours_total),
    )


def map_history(legacy: LegacyHistoryEntry, zone: Optional[tzinfo] = None) -> NewHistoryEntry:
    """Map a legacy history row, deriving the ISO week-numbering year.

    The legacy week number is trusted and copied as ``isoweek``; only
    ``isoweekyear`` is computed, from midnight of the row's date in *zone*.
    """

    return NewHistoryEntry(
        id=legacy.id_activity,
        year=legacy.year,
        month=legacy.month,
        day=legacy.day,
        isoweek=legacy.weeknumber,
        isoweekyear=iso_week_year(legacy.year, legacy.month, legacy.day, zone),
        hoursonday=round_to_six_decimals(legacy.hours_on_day),
        date=legacy.date,
    )
