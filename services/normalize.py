"""Calendar and precision helpers applied while mapping legacy rows."""

from __future__ import annotations

import math
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pytz
from dateutil import tz

from .errors import ConfigurationError, InvalidDateError

HOURS_SCALE = 1_000_000
_INTEGRAL_FLOAT_LIMIT = 2.0 ** 52


def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    """Return the zone used to localise history dates.

    ``None`` selects the machine's local zone, anything else is looked up in
    the Olson database.
    """

    if not name:
        return tz.tzlocal()
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        raise ConfigurationError(f"Unknown time zone '{name}'") from exc


def _local_midnight(year: int, month: int, day: int, zone: tzinfo) -> datetime:
    for label, value in (("year", year), ("month", month), ("day", day)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDateError(f"{label} must be an integer, got {value!r}")
    try:
        naive = datetime(year, month, day)
    except ValueError as exc:
        raise InvalidDateError(
            f"{year:04d}-{month:02d}-{day:02d} is not a valid calendar date"
        ) from exc

    # pytz zones must attach through localize() to pick the right offset
    localize = getattr(zone, "localize", None)
    if localize is not None:
        return localize(naive)
    aware = naive.replace(tzinfo=zone)
    # A DST jump at midnight leaves no 00:00; move forward within the same day.
    return tz.resolve_imaginary(aware)


def iso_week_year(year: int, month: int, day: int, zone: Optional[tzinfo] = None) -> int:
    """Return the ISO-8601 week-numbering year of midnight on the given date.

    The week-numbering year differs from ``year`` for dates that belong to
    week 1 of the following year or week 52/53 of the previous one, e.g.
    2018-12-31 is in week 1 of 2019.
    """

    if zone is None:
        zone = tz.tzlocal()
    midnight = _local_midnight(year, month, day, zone)
    return midnight.isocalendar()[0]


def round_to_six_decimals(value: float) -> float:
    """Round *value* to six decimal places, half away from zero.

    ``Decimal`` is built from the exact binary product so ties are decided the
    same way as a native ``round`` on the scaled value.
    """

    value = float(value)
    product = value * HOURS_SCALE
    # From 2**52 on every float is integral, so there is nothing left to round.
    if not math.isfinite(product) or abs(product) >= _INTEGRAL_FLOAT_LIMIT:
        return value
    scaled = Decimal(product).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return float(scaled) / HOURS_SCALE
