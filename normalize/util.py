"""
Normalization utility helpers.
Primitive formatters (dates, byte sizes, periods, truncation) and dict-safe accessors
shared by the activity, comment and custom field normalizers.
"""
import hashlib
import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from normalize.models import UserRef

UNKNOWN_DATE = 'unknown date'
TRUNCATION_MARKER = ' [truncated]'
UNKNOWN_VALUE = 'Unknown value'

DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_SIZE_UNITS = ['bytes', 'KB', 'MB', 'GB', 'TB']


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _get(mapping: Any, *path: str) -> Any:
    """Walk nested dict keys, returning None as soon as a level is missing or not a dict."""
    current = mapping
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _to_utc(value: datetime) -> Optional[datetime]:
    """Aware UTC datetime, or None when the shift to UTC leaves the datetime range."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse epoch milliseconds, an ISO string or a datetime into an aware UTC datetime.

    Returns None for missing or unparseable values; never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_utc(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text or text == UNKNOWN_DATE:
            return None
        if re.fullmatch(r'-?\d+', text):
            # int() refuses very long digit strings
            try:
                millis = int(text)
            except ValueError:
                return None
            return parse_timestamp(millis)
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None
        return _to_utc(parsed)
    return None


def format_date(value: Any) -> Optional[str]:
    """Format a timestamp as 'YYYY-MM-DD HH:MM:SS' (UTC), or None when it can't be parsed."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.strftime(DATE_FORMAT)


def format_date_or_unknown(value: Any) -> str:
    formatted = format_date(value)
    return formatted if formatted is not None else UNKNOWN_DATE


def format_file_size(size: Any) -> str:
    """Format a byte count as a human readable string, e.g. 1536 -> '1.5 KB'."""
    try:
        size = int(size)
    except (TypeError, ValueError):
        return 'Unknown size'
    if size < 0:
        return 'Unknown size'
    if size == 1:
        return '1 byte'
    if size < 1024:
        return f'{size} bytes'
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f'{value:.1f} {_SIZE_UNITS[index]}'


def format_period(period_id: Any) -> str:
    """Format an ISO-8601 style period id such as 'PT4H30M' as '4 hours 30 minutes'."""
    if not isinstance(period_id, str) or not period_id:
        return 'Not set'

    def _plural(count: int, unit: str) -> str:
        return f"{count} {unit}{'s' if count > 1 else ''}"

    weeks = re.match(r'P(\d+)W', period_id)
    if weeks:
        return _plural(int(weeks.group(1)), 'week')
    days = re.match(r'P(\d+)D', period_id)
    if days:
        return _plural(int(days.group(1)), 'day')
    match = re.match(r'PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?', period_id)
    if not match:
        return period_id
    parts = []
    for raw, unit in zip(match.groups(), ('hour', 'minute', 'second')):
        if raw and int(raw) > 0:
            parts.append(_plural(int(raw), unit))
    return ' '.join(parts) if parts else period_id


def truncate_text(text: Any, limit: Optional[int], marker: str = TRUNCATION_MARKER) -> str:
    """Cut text to `limit` characters and append `marker` when it was longer.

    Missing text becomes ''. A falsy limit disables truncation.
    """
    if text is None:
        return ''
    if not isinstance(text, str):
        text = str(text)
    if limit and limit > 0 and len(text) > limit:
        return text[:limit] + marker
    return text


def value_to_string(item: Any) -> str:
    """Display string for one added/removed entry: name -> text -> presentation -> 'Unknown value'."""
    if isinstance(item, dict):
        for key in ('name', 'text', 'presentation'):
            val = item.get(key)
            if val:
                return str(val)
        return UNKNOWN_VALUE
    if isinstance(item, bool) or item is None:
        return UNKNOWN_VALUE
    if isinstance(item, (str, int, float)):
        return str(item)
    return UNKNOWN_VALUE


def normalize_values(raw: Any) -> Optional[List[str]]:
    """Normalize an added/removed payload to a list of strings.

    Arrays map entry-wise, a single object or primitive becomes a one-element list,
    and an absent payload returns None so callers can omit the key entirely.
    """
    if raw is None:
        return None
    items = raw if isinstance(raw, list) else [raw]
    return [value_to_string(item) for item in items]


def synthesize_id(raw: Any, prefix: str = 'activity') -> str:
    """Deterministic id for a record that lacks one."""
    try:
        canonical = json.dumps(raw, sort_keys=True, default=str)
    except (TypeError, ValueError):
        canonical = repr(raw)
    return f'{prefix}-' + hashlib.sha256(canonical.encode('utf-8')).hexdigest()[:16]


def is_user_shaped(raw: Any) -> bool:
    if not isinstance(raw, dict) or not raw.get('id'):
        return False
    kind = raw.get('$type')
    return (isinstance(kind, str) and kind.endswith('User')) or 'login' in raw


def normalize_user(raw: Any) -> Optional[UserRef]:
    """Create a UserRef from a raw user dict, or None when it carries no id."""
    if not isinstance(raw, dict):
        return None
    user_id = raw.get('id')
    if user_id is None or user_id == '':
        return None
    return UserRef(
        user_id=str(user_id),
        name=raw.get('name'),
        full_name=raw.get('fullName'),
        login=raw.get('login'),
        email=raw.get('email'),
    )


def register_user(user_map: Optional[Dict[str, UserRef]], raw: Any) -> Optional[str]:
    """Register a raw user in the side-channel map (first writer wins) and return its id."""
    user = normalize_user(raw)
    if user is None:
        return None
    if user_map is not None and user.user_id not in user_map:
        user_map[user.user_id] = user
    return user.user_id


def display_name_for(users: Mapping[str, UserRef], user_id: Optional[str]) -> str:
    if not user_id:
        return ''
    user = users.get(user_id)
    return user.display_name if user else user_id


def find_user_id_by_name(users: Mapping[str, UserRef], name: str) -> Optional[str]:
    """Reverse lookup of a display value against the directory; first match in insertion order wins."""
    if not name:
        return None
    for user_id, user in users.items():
        if name in user.names():
            return user_id
    return None
