"""
Timeline merger: combine normalized activity and comment items into one ascending sequence.

Items without a usable timestamp sort as if they happened at the Unix epoch, so they
come first. The sort is stable: equal instants keep their input order, with activities
ahead of comments.
"""
from typing import Iterable, List, Tuple

from normalize.models import TimelineItem
from normalize.util import EPOCH


def sort_key(item: TimelineItem):
    return item.occurred_at or EPOCH


def sort_timeline(items: Iterable[TimelineItem]) -> List[TimelineItem]:
    return sorted(items, key=sort_key)


def cap_activities(activity_items: Iterable[TimelineItem], max_activities: int) -> Tuple[List[TimelineItem], int]:
    """Keep the `max_activities` most recent items of the sorted set (0 = keep all).

    Returns (kept items in ascending order, number dropped).
    """
    ordered = sort_timeline(activity_items)
    if not max_activities or max_activities <= 0 or len(ordered) <= max_activities:
        return ordered, 0
    dropped = len(ordered) - max_activities
    return ordered[dropped:], dropped


def _drop_duplicate_postings(activity_items: List[TimelineItem], comment_items: List[TimelineItem]) -> List[TimelineItem]:
    """Drop comment-like activity items that describe a comment already present as a real comment."""
    comment_ids = {c.item_id for c in comment_items}
    return [a for a in activity_items if not (a.source_comment_id and a.source_comment_id in comment_ids)]


def merge_timeline(activity_items: Iterable[TimelineItem], comment_items: Iterable[TimelineItem]) -> List[TimelineItem]:
    """Concatenate activity items then comment items and sort ascending by instant."""
    comments = list(comment_items)
    activities = _drop_duplicate_postings(list(activity_items), comments)
    return sort_timeline(activities + comments)
