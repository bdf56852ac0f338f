"""Relative date resolution from the user's original wording.

The model's own date arithmetic is never trusted: "son 3 ay" (last 3
months) is recomputed here against the current business day.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from .contracts import DateRange

logger = logging.getLogger(__name__)

DEFAULT_RELATIVE_DAYS = 30
MAX_RELATIVE_DAYS = 36500
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

RELATIVE_PERIOD_RE = re.compile(r"\bson\s+(\d{1,6})\s*(yıl|yil|sene|ay|gün|gun)", re.IGNORECASE)

# Keyed by the ASCII-folded unit, see _fold_unit.
DAYS_PER_UNIT = {
    "yil": 365,
    "sene": 365,
    "ay": 30,
    "gun": 1,
}


def _fold_unit(unit: str) -> str:
    """Fold Turkish casing and diacritics: "YİL", "yıl", "GÜN" -> "yil", "yil", "gun"."""
    decomposed = unicodedata.normalize("NFKD", unit.casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c)).replace("ı", "i")


def relative_days(text: str | None) -> int:
    """Day count for the first "son <N> <unit>" phrase in *text*, else 30."""
    if not text:
        return DEFAULT_RELATIVE_DAYS
    match = RELATIVE_PERIOD_RE.search(text)
    if not match:
        return DEFAULT_RELATIVE_DAYS

    value = int(match.group(1))
    unit = _fold_unit(match.group(2))
    per_unit = DAYS_PER_UNIT.get(unit)
    if per_unit is None:
        logger.warning("Unrecognized relative period unit %r, using %d days", match.group(2), DEFAULT_RELATIVE_DAYS)
        return DEFAULT_RELATIVE_DAYS

    days = value * per_unit
    if days > MAX_RELATIVE_DAYS:
        logger.warning("Relative period of %d days capped at %d", days, MAX_RELATIVE_DAYS)
        days = MAX_RELATIVE_DAYS
    logger.info("Relative period %d %s -> %d days", value, unit, days)
    return days


def business_now(timezone_name: str) -> datetime:
    return datetime.now(ZoneInfo(timezone_name))


def resolve_date_range(text: str | None, now: datetime) -> DateRange:
    days = relative_days(text)
    end = datetime.combine(now.date(), time(23, 59, 59), tzinfo=now.tzinfo)
    start = datetime.combine((end - timedelta(days=days)).date(), time(0, 0, 0), tzinfo=now.tzinfo)
    return DateRange(
        start_date=start.strftime(DATE_FORMAT),
        end_date=end.strftime(DATE_FORMAT),
        is_relative=True,
        relative_days=days,
    )


def apply_date_range(parameters: dict, date_range: DateRange) -> None:
    parameters["startDate"] = date_range.start_date
    parameters["endDate"] = date_range.end_date
