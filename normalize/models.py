"""
Data models for raw issue records and the canonical timeline.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class UserRef:
    """
    Normalized user reference. Identity is always `user_id`.
    """
    def __init__(self, user_id: str, name: Optional[str] = None, full_name: Optional[str] = None, login: Optional[str] = None, email: Optional[str] = None):
        self.user_id = user_id
        self.name = name
        self.full_name = full_name
        self.login = login
        self.email = email

    @property
    def display_name(self) -> str:
        return self.full_name or self.name or self.login or self.user_id

    def names(self) -> Tuple[str, ...]:
        """All non-empty display attributes, used for reverse lookup by name."""
        return tuple(n for n in (self.display_name, self.name, self.full_name, self.login) if n)

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': self.user_id, 'name': self.display_name}
        if self.full_name:
            data['fullName'] = self.full_name
        if self.login:
            data['login'] = self.login
        if self.email:
            data['email'] = self.email
        return data

    def __repr__(self):
        return f"UserRef({self.user_id!r}, {self.display_name!r})"


class ActivityKind(Enum):
    """Closed set of activity variants, keyed off the backend's `$type` tag."""
    FIELD_CHANGE = 'field_change'
    SIMPLE_VALUE = 'simple_value'
    COMMENT = 'comment'
    ISSUE_CREATED = 'issue_created'
    WORK_ITEM = 'work_item'
    VISIBILITY = 'visibility'
    ATTACHMENT = 'attachment'
    UNKNOWN = 'unknown'


ACTIVITY_TYPE_KINDS: Dict[str, ActivityKind] = {
    'CustomFieldActivityItem': ActivityKind.FIELD_CHANGE,
    'IssueCustomFieldActivityItem': ActivityKind.FIELD_CHANGE,
    'SimpleValueActivityItem': ActivityKind.SIMPLE_VALUE,
    'CommentActivityItem': ActivityKind.COMMENT,
    'IssueCommentActivityItem': ActivityKind.COMMENT,
    'IssueCreatedActivityItem': ActivityKind.ISSUE_CREATED,
    'WorkItemActivityItem': ActivityKind.WORK_ITEM,
    'VisibilityGroupActivityItem': ActivityKind.VISIBILITY,
    'VisibilityActivityItem': ActivityKind.VISIBILITY,
    'AttachmentActivityItem': ActivityKind.ATTACHMENT,
}


def activity_kind_for(type_tag: Any) -> ActivityKind:
    if not isinstance(type_tag, str) or not type_tag:
        return ActivityKind.UNKNOWN
    kind = ACTIVITY_TYPE_KINDS.get(type_tag)
    if kind is not None:
        return kind
    if 'Field' in type_tag:
        return ActivityKind.FIELD_CHANGE
    return ActivityKind.UNKNOWN


_ACTIVITY_KEYS = ('id', '$type', 'timestamp', 'author', 'field', 'added', 'removed', 'target', 'comment')


class RawActivity:
    """
    One raw activity record, tagged with its variant. Every attribute is optional.
    """
    def __init__(self, kind: ActivityKind, type_tag: str, activity_id: Optional[str] = None, timestamp: Any = None, author: Optional[dict] = None, field: Any = None, added: Any = None, removed: Any = None, target: Optional[dict] = None, comment: Optional[dict] = None, raw: Optional[dict] = None):
        self.kind = kind
        self.type_tag = type_tag
        self.activity_id = activity_id
        self.timestamp = timestamp
        self.author = author
        self.field = field
        self.added = added
        self.removed = removed
        self.target = target
        self.comment = comment
        self.raw = raw

    @classmethod
    def from_raw(cls, raw: Any) -> Optional['RawActivity']:
        """Parse a raw dict, or return None when the record carries nothing usable."""
        if not isinstance(raw, dict):
            return None
        if not any(raw.get(k) is not None for k in _ACTIVITY_KEYS):
            return None
        type_tag = raw.get('$type') if isinstance(raw.get('$type'), str) else 'Unknown'
        activity_id = raw.get('id')
        return cls(
            kind=activity_kind_for(type_tag),
            type_tag=type_tag,
            activity_id=str(activity_id) if activity_id not in (None, '') else None,
            timestamp=raw.get('timestamp'),
            author=raw.get('author') if isinstance(raw.get('author'), dict) else None,
            field=raw.get('field'),
            added=raw.get('added'),
            removed=raw.get('removed'),
            target=raw.get('target') if isinstance(raw.get('target'), dict) else None,
            comment=raw.get('comment') if isinstance(raw.get('comment'), dict) else None,
            raw=raw,
        )


class TimelineItemType(Enum):
    COMMENT = 'comment'
    ACTIVITY = 'activity'


class CommentPayload:
    def __init__(self, text: str = '', is_pinned: Optional[bool] = None):
        self.text = text
        self.is_pinned = is_pinned


class ActivityPayload:
    def __init__(self, activity_type: str, field: Optional[str] = None, added_values: Optional[List[str]] = None, removed_values: Optional[List[str]] = None):
        self.activity_type = activity_type
        self.field = field
        self.added_values = added_values
        self.removed_values = removed_values


class TimelineItem:
    """
    Canonical timeline entry, identical in shape whether it came from a comment or an activity.

    `occurred_at` is the parsed instant used for ordering (None when the source had no
    usable timestamp, in which case `timestamp` is the 'unknown date' sentinel).
    `source_type` records the activity `$type` for comment-like items derived from activities,
    and `source_comment_id` the id of the comment they describe.
    """
    def __init__(self, item_id: str, kind: TimelineItemType, timestamp: str, author_id: Optional[str] = None, payload: Any = None, occurred_at: Optional[datetime] = None, source_type: Optional[str] = None, source_comment_id: Optional[str] = None):
        self.item_id = item_id
        self.kind = kind
        self.timestamp = timestamp
        self.author_id = author_id
        self.payload = payload
        self.occurred_at = occurred_at
        self.source_type = source_type
        self.source_comment_id = source_comment_id

    @property
    def is_comment(self) -> bool:
        return self.kind is TimelineItemType.COMMENT

    @property
    def is_activity(self) -> bool:
        return self.kind is TimelineItemType.ACTIVITY

    @property
    def field(self) -> Optional[str]:
        return self.payload.field if isinstance(self.payload, ActivityPayload) else None

    @property
    def added_values(self) -> Optional[List[str]]:
        return self.payload.added_values if isinstance(self.payload, ActivityPayload) else None

    @property
    def removed_values(self) -> Optional[List[str]]:
        return self.payload.removed_values if isinstance(self.payload, ActivityPayload) else None

    @property
    def activity_type(self) -> Optional[str]:
        if isinstance(self.payload, ActivityPayload):
            return self.payload.activity_type
        return self.source_type

    @property
    def text(self) -> Optional[str]:
        return self.payload.text if isinstance(self.payload, CommentPayload) else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'id': self.item_id, 'type': self.kind.value, 'timestamp': self.timestamp}
        if self.author_id:
            data['author'] = self.author_id
        if isinstance(self.payload, CommentPayload):
            data['text'] = self.payload.text
            if self.payload.is_pinned is not None:
                data['isPinned'] = self.payload.is_pinned
        elif isinstance(self.payload, ActivityPayload):
            data['activityType'] = self.payload.activity_type
            if self.payload.field:
                data['field'] = self.payload.field
            if self.payload.added_values is not None:
                data['addedValues'] = list(self.payload.added_values)
            if self.payload.removed_values is not None:
                data['removedValues'] = list(self.payload.removed_values)
        return data

    def __repr__(self):
        return f"TimelineItem({self.item_id!r}, {self.kind.value}, {self.timestamp!r})"
