"""
Activity normalizer: one raw, type-tagged activity record -> one canonical TimelineItem.

Never raises on malformed input; unusable records yield None.
"""
import logging
from typing import Any, Callable, Dict, Optional

from normalize.models import (
    ActivityKind,
    ActivityPayload,
    CommentPayload,
    RawActivity,
    TimelineItem,
    TimelineItemType,
    UserRef,
)
from normalize.util import (
    _as_list,
    _get,
    format_date_or_unknown,
    is_user_shaped,
    normalize_values,
    parse_timestamp,
    register_user,
    synthesize_id,
    truncate_text,
)

logger = logging.getLogger(__name__)


def _field_name(field: Any) -> Optional[str]:
    """Only an object exposing a non-empty `name` yields a field name."""
    if isinstance(field, dict):
        name = field.get('name')
        if name:
            return str(name)
    return None


def _register_value_users(raw_values: Any, user_map: Optional[Dict[str, UserRef]]):
    if user_map is None or raw_values is None:
        return
    items = raw_values if isinstance(raw_values, list) else [raw_values]
    for item in items:
        if is_user_shaped(item):
            register_user(user_map, item)


def extract_comment_text(activity: RawActivity) -> Optional[str]:
    """Comment text of a comment-posting activity: comment.text -> target.text -> added[0].text."""
    for candidate in (_get(activity.comment, 'text'), _get(activity.target, 'text')):
        if isinstance(candidate, str):
            return candidate
    added = activity.added
    first = added[0] if isinstance(added, list) and added else added
    text = _get(first, 'text')
    return text if isinstance(text, str) else None


def _source_comment_id(activity: RawActivity) -> Optional[str]:
    added = activity.added
    first = added[0] if isinstance(added, list) and added else added
    for candidate in (_get(activity.comment, 'id'), _get(activity.target, 'id'), _get(first, 'id')):
        if candidate not in (None, ''):
            return str(candidate)
    return None


def _activity_payload(activity: RawActivity) -> ActivityPayload:
    return ActivityPayload(
        activity_type=activity.type_tag,
        field=_field_name(activity.field),
        added_values=normalize_values(activity.added),
        removed_values=normalize_values(activity.removed),
    )


def _comment_or_activity_payload(activity: RawActivity, max_comment_length: Optional[int]):
    text = extract_comment_text(activity)
    if text is None:
        return TimelineItemType.ACTIVITY, _activity_payload(activity)
    return TimelineItemType.COMMENT, CommentPayload(text=truncate_text(text, max_comment_length))


def _plain_activity(activity: RawActivity, max_comment_length: Optional[int]):
    return TimelineItemType.ACTIVITY, _activity_payload(activity)


# every ActivityKind must have a handler
PAYLOAD_BUILDERS: Dict[ActivityKind, Callable] = {
    ActivityKind.FIELD_CHANGE: _plain_activity,
    ActivityKind.SIMPLE_VALUE: _plain_activity,
    ActivityKind.COMMENT: _comment_or_activity_payload,
    ActivityKind.ISSUE_CREATED: _plain_activity,
    ActivityKind.WORK_ITEM: _plain_activity,
    ActivityKind.VISIBILITY: _plain_activity,
    ActivityKind.ATTACHMENT: _plain_activity,
    ActivityKind.UNKNOWN: _plain_activity,
}


def normalize_activity(raw: Any, user_map: Optional[Dict[str, UserRef]] = None, max_comment_length: Optional[int] = None) -> Optional[TimelineItem]:
    """Normalize one raw activity record.

    When `user_map` is given, the author (and any user-shaped added/removed values) are
    registered in it keyed by id; the first registration of an id wins.
    """
    activity = RawActivity.from_raw(raw)
    if activity is None:
        logger.debug("Empty or non-object activity record skipped")
        return None

    author_id = register_user(user_map, activity.author)
    _register_value_users(activity.added, user_map)
    _register_value_users(activity.removed, user_map)

    kind, payload = PAYLOAD_BUILDERS[activity.kind](activity, max_comment_length)
    source_type = activity.type_tag if kind is TimelineItemType.COMMENT else None
    return TimelineItem(
        item_id=activity.activity_id or synthesize_id(raw),
        kind=kind,
        timestamp=format_date_or_unknown(activity.timestamp),
        author_id=author_id,
        payload=payload,
        occurred_at=parse_timestamp(activity.timestamp),
        source_type=source_type,
        source_comment_id=_source_comment_id(activity) if source_type else None,
    )


def normalize_activities(raw_activities: Any, user_map: Optional[Dict[str, UserRef]] = None, max_comment_length: Optional[int] = None) -> list:
    """Normalize a list of raw activities, dropping unusable records."""
    items = []
    for raw in _as_list(raw_activities):
        item = normalize_activity(raw, user_map=user_map, max_comment_length=max_comment_length)
        if item is not None:
            items.append(item)
    return items
