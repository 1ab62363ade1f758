"""
Value Parsing Primitives

Loose scalar parsing shared by type inference, chart shaping and
report metrics. Records come from spreadsheets, so every cell may be a
string, a number, a date, or missing.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Sequence


# Date formats tried after ISO-8601
DATE_FORMATS = [
    "%m/%d/%Y",       # 01/15/2024
    "%d/%m/%Y",       # 15/01/2024
    "%Y/%m/%d",       # 2024/01/15
    "%m-%d-%Y",       # 01-15-2024
    "%d-%m-%Y",       # 15-01-2024
    "%B %d, %Y",      # January 15, 2024
    "%b %d, %Y",      # Jan 15, 2024
    "%d %B %Y",       # 15 January 2024
    "%d %b %Y",       # 15 Jan 2024
    "%Y-%m",          # 2024-01
]

_NUMERIC_TEXT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

# Accepted field names per semantic role, in lookup order
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "amount": ("amount", "revenue", "sales"),
    "timestamp": ("date", "timestamp"),
    "label": ("product", "item", "name"),
    "quantity": ("quantity",),
}


def is_missing(value: Any) -> bool:
    """True for None, NaN and blank strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def to_number(value: Any) -> Optional[float]:
    """
    Parse a loosely typed cell as a finite float.

    Returns None when the value is missing or not numeric.
    """
    if is_missing(value):
        return None

    if isinstance(value, (bool, int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a loosely typed cell as a datetime.

    Numbers and purely numeric strings are never treated as dates,
    so "20230101" or 42 stay numeric.
    """
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or _NUMERIC_TEXT.match(text):
        return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None

    if parsed is not None:
        return _naive_utc(parsed)

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    return None


def _naive_utc(value: datetime) -> datetime:
    """Convert aware datetimes to naive UTC so mixed inputs stay comparable."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def period_key(value: Any) -> Optional[str]:
    """Month bucket ("YYYY-MM") for a date-like value."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return f"{parsed.year:04d}-{parsed.month:02d}"


def resolve_field(
    record: Mapping[str, Any],
    role: str,
    aliases: Optional[Sequence[str]] = None,
) -> Any:
    """
    Return the first non-missing value among the aliases of a role.

    Args:
        record: Single dataset record
        role: Key of FIELD_ALIASES (amount, timestamp, label, quantity)
        aliases: Field names to try instead of FIELD_ALIASES[role]

    Returns:
        The raw value, or None if no alias is present
    """
    for field_name in aliases or FIELD_ALIASES[role]:
        value = record.get(field_name)
        if not is_missing(value):
            return value
    return None


def resolve_amount(
    record: Mapping[str, Any],
    aliases: Optional[Sequence[str]] = None,
) -> float:
    """Amount of a record; unparseable or absent amounts count as 0."""
    amount = to_number(resolve_field(record, "amount", aliases))
    return amount if amount is not None else 0.0
