"""
Data normalization and cleaning functions.
"""
import re
from datetime import datetime, tzinfo
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Pattern
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

logger = logging.getLogger(__name__)

# Leap year used when a layout carries no year, so 29/02 still parses.
PLACEHOLDER_YEAR = 1904


def clean_decimal(value: str) -> Decimal:
    """
    Strip everything except digits and the decimal point.

    Signs and credit markers are handled by the caller.

    Args:
        value: Raw money string (e.g. "1,234.50CR", "RM12.00", "+3.20")

    Returns:
        Decimal magnitude, or 0 when nothing numeric is left
    """
    if not value:
        return Decimal('0')

    cleaned = re.sub(r'[^0-9.]', '', value)
    if not cleaned:
        return Decimal('0')

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        logger.warning(f"Could not parse amount: {value}")
        return Decimal('0')


def to_decimal(value: str) -> Decimal:
    """
    Parse a plain decimal string exactly.

    Raises:
        ValueError: If the value is not a decimal number
    """
    try:
        amount = Decimal(value.strip().replace(',', ''))
    except (InvalidOperation, AttributeError):
        raise ValueError(f"invalid decimal value: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"invalid decimal value: {value!r}")
    return amount


def strip_prefix(value: str, prefix: str) -> str:
    """Remove a currency prefix such as "RM" from the front of a value."""
    value = value.strip()
    if prefix and value.startswith(prefix):
        return value[len(prefix):]
    return value


def has_suffix(value: str, marker: str) -> bool:
    return bool(marker) and value.strip().endswith(marker)


def normalize_text(value: str) -> str:
    """
    Normalize text by trimming and collapsing whitespace.

    Args:
        value: Raw text string

    Returns:
        Cleaned text string
    """
    if not value:
        return ""

    return re.sub(r'\s+', ' ', value.strip())


def has_year(layout: str) -> bool:
    return '%Y' in layout or '%y' in layout


def trim_layout(value: str, layout: str, separator: str = "/") -> str:
    """
    Shorten a separated date layout to the number of parts present in value.

    "01/11" against "%d/%m/%y" gives "%d/%m".
    """
    parts = value.strip().count(separator) + 1
    layout_parts = layout.split(separator)
    if parts >= len(layout_parts):
        return layout
    return separator.join(layout_parts[:parts])


def parse_date(value: str, layout: str, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse a date with a strptime layout.

    Layouts without a year parse against PLACEHOLDER_YEAR; callers are expected
    to resolve the real year with fix_date_year.

    Args:
        value: Raw date string
        layout: strptime layout (e.g. "%d/%m/%y", "%d %b %y")
        tz: Timezone to attach to the parsed value, naive when None

    Returns:
        Parsed datetime or None if parsing fails
    """
    if not value or not value.strip():
        return None

    cleaned = value.strip()

    try:
        if has_year(layout):
            parsed = datetime.strptime(cleaned, layout)
        else:
            parsed = datetime.strptime(f"{cleaned} {PLACEHOLDER_YEAR}", f"{layout} %Y")
    except ValueError:
        logger.warning(f"Could not parse date '{value}' with layout '{layout}'")
        return None

    if tz is not None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def fix_date_year(value: datetime, reference: Optional[datetime]) -> datetime:
    """
    Resolve the year of a transaction date against the statement date.

    When the years differ the reference year is used, or the year before it
    when the transaction month is later than the reference month (a December
    transaction on a January statement). The time of day is dropped.

    Args:
        value: Parsed transaction date
        reference: Statement date, or None to leave the value untouched

    Returns:
        Date with the resolved year at midnight
    """
    if reference is None:
        return value

    year = value.year
    if year != reference.year:
        year = reference.year
        if value.month > reference.month:
            year -= 1

    day = value.day
    if value.month == 2 and day == 29 and not _is_leap(year):
        logger.warning(f"29 February does not exist in {year}, using 28 February")
        day = 28

    return value.replace(year=year, day=day, hour=0, minute=0, second=0, microsecond=0)


def _is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Look up a named timezone.

    Falls back to the local zone when the zone database is unavailable.
    Returns None (naive datetimes) when no name is configured.
    """
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Timezone {name} not available, using local time")
        return datetime.now().astimezone().tzinfo


def search_value(pattern: Optional[Pattern], text: str) -> str:
    """
    Return the captured value of the first match of pattern in text.

    The named group "value" wins when the pattern has one, then the first
    non-empty group, then the whole match. Empty string when nothing matches.
    """
    if pattern is None:
        return ""

    match = pattern.search(text)
    if not match:
        return ""

    if "value" in pattern.groupindex:
        return (match.group("value") or "").strip()

    for group in match.groups():
        if group:
            return group.strip()

    return match.group(0).strip() if not pattern.groups else ""


def compact_number(value: str) -> str:
    """Remove whitespace inside an account or card number."""
    return re.sub(r'\s+', '', value)


def source_name(path) -> str:
    """Statement source label: the file name without its extension."""
    return Path(path).stem
