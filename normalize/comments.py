"""
Comment normalizer: one raw comment -> one canonical TimelineItem.
"""
import logging
from typing import Any, Dict, Optional

from normalize.models import CommentPayload, TimelineItem, TimelineItemType, UserRef
from normalize.util import (
    _as_list,
    format_date_or_unknown,
    parse_timestamp,
    register_user,
    synthesize_id,
    truncate_text,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMENT_LENGTH = 1000


def normalize_comment(raw: Any, max_comment_length: Optional[int] = DEFAULT_MAX_COMMENT_LENGTH, user_map: Optional[Dict[str, UserRef]] = None) -> Optional[TimelineItem]:
    """Normalize a raw comment, truncating its text to `max_comment_length` + ' [truncated]'.

    Missing text becomes '' and a missing `created` becomes 'unknown date'.
    Returns None only when `raw` is not an object at all.
    """
    if not isinstance(raw, dict):
        logger.debug("Non-object comment record skipped: %r", type(raw).__name__)
        return None
    comment_id = raw.get('id')
    is_pinned = raw.get('isPinned')
    return TimelineItem(
        item_id=str(comment_id) if comment_id not in (None, '') else synthesize_id(raw, prefix='comment'),
        kind=TimelineItemType.COMMENT,
        timestamp=format_date_or_unknown(raw.get('created')),
        author_id=register_user(user_map, raw.get('author')),
        payload=CommentPayload(
            text=truncate_text(raw.get('text'), max_comment_length),
            is_pinned=is_pinned if isinstance(is_pinned, bool) else None,
        ),
        occurred_at=parse_timestamp(raw.get('created')),
    )


def normalize_comments(raw_comments: Any, max_comment_length: Optional[int] = DEFAULT_MAX_COMMENT_LENGTH, user_map: Optional[Dict[str, UserRef]] = None) -> list:
    items = []
    for raw in _as_list(raw_comments):
        item = normalize_comment(raw, max_comment_length=max_comment_length, user_map=user_map)
        if item is not None:
            items.append(item)
    return items
