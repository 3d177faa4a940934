"""
Value normalization for loosely-typed document fields.

Order documents are written by several clients over time, so amounts arrive as
strings with currency symbols and thousands separators, and dates arrive as
Firestore timestamps, ``{seconds: ...}`` maps, ISO strings or not at all.
Everything that does arithmetic or date grouping goes through these helpers.
"""

import re
import logging
from datetime import datetime, date
from typing import Any, Iterable, Optional

from timezone_utils import IST, get_ist_time_naive

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r'[^\d.]')
_LEADING_NUMBER = re.compile(r'^(\d+\.?\d*|\.\d+)')

# Order matters: first matching format wins
DATE_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y/%m/%d',
    '%m/%d/%Y',
    '%d %b %Y',
    '%b %d, %Y',
    '%B %d, %Y',
    '%a %b %d %Y',
)

ORDER_DATE_FIELDS = ('createdAt', 'booking_date', 'date', 'order_date')


def first_present(*values: Any) -> Any:
    """Return the first truthy value, or the last candidate if none is truthy."""
    for value in values:
        if value:
            return value
    return values[-1] if values else None


def coerce_amount(value: Any) -> float:
    """
    Coerce a free-form amount into a float.

    All characters other than digits and dots are dropped, then the longest
    leading number is parsed. Input without digits yields 0.

    Examples:
        "₹1,200" -> 1200.0
        "3,400.50" -> 3400.5
        "N/A" -> 0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value == value else 0.0

    cleaned = _NON_NUMERIC.sub('', str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(1))


def display_number(value: float) -> str:
    """Render a number the way it is shown and searched in tables ("1200", "12.5")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_naive_ist(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(IST).replace(tzinfo=None)
    return dt


def parse_date_string(text: str) -> Optional[datetime]:
    """Parse an ISO or common human date string. Returns None when unparseable."""
    text = (text or '').strip()
    if not text:
        return None

    iso_text = text[:-1] + '+00:00' if text.endswith('Z') else text
    try:
        return _to_naive_ist(datetime.fromisoformat(iso_text))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert a stored date value into a naive IST datetime.

    Accepted shapes:
        - datetime / Firestore DatetimeWithNanoseconds
        - date
        - objects exposing ``to_datetime()`` (protobuf timestamps)
        - ``{'seconds': ...}`` maps and objects with a ``seconds`` attribute
        - epoch milliseconds as int/float
        - date strings
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return _to_naive_ist(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if hasattr(value, 'to_datetime'):
        return _to_naive_ist(value.to_datetime())

    seconds = None
    if isinstance(value, dict):
        seconds = value.get('seconds') or value.get('_seconds')
    elif hasattr(value, 'seconds'):
        seconds = getattr(value, 'seconds')
    if seconds is not None:
        try:
            return datetime.fromtimestamp(float(seconds), IST).replace(tzinfo=None)
        except (TypeError, ValueError, OverflowError, OSError):
            return None

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, IST).replace(tzinfo=None)
        except (ValueError, OverflowError, OSError):
            return None
    if isinstance(value, str):
        return parse_date_string(value)
    return None


def resolve_order_date(order: dict, now: Optional[datetime] = None,
                       fields: Iterable[str] = ORDER_DATE_FIELDS) -> datetime:
    """
    Effective date of an order.

    Candidates are tried in ``fields`` order and the first one that parses
    wins. When none is usable the current IST time is returned.
    """
    for field in fields:
        resolved = to_datetime(order.get(field))
        if resolved is not None:
            return resolved
    if any(order.get(field) for field in fields):
        logger.debug(f"Order {order.get('id', '?')}: no parseable date field, using current time")
    return now or get_ist_time_naive()
