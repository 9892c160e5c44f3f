"""
Contributor summarizer: who did what on an issue, for free-text reporting.

Any authored timeline item counts; this view makes no attribution judgement.
"""
from typing import Dict, Iterable, List, Mapping, Optional

from correlate.models import Contributor
from normalize.models import ActivityKind, TimelineItem, UserRef, activity_kind_for
from normalize.util import EPOCH, display_name_for


def describe_action(item: TimelineItem) -> str:
    """Human-readable action for a timeline item, e.g. 'changed Stage'."""
    if item.is_comment:
        # comment-like items derived from activities keep their activity tag
        return 'commented' if item.source_type else 'added comment'
    kind = activity_kind_for(item.activity_type)
    if kind is ActivityKind.ISSUE_CREATED:
        return 'created issue'
    if kind is ActivityKind.COMMENT:
        return 'commented'
    if item.field:
        return f'changed {item.field}'
    if kind in (ActivityKind.FIELD_CHANGE, ActivityKind.SIMPLE_VALUE):
        return 'changed field'
    if kind is ActivityKind.WORK_ITEM:
        return 'logged work'
    if kind is ActivityKind.VISIBILITY:
        return 'changed visibility'
    if kind is ActivityKind.ATTACHMENT:
        return 'changed attachments'
    return 'updated issue'


def summarize_contributors(timeline: Iterable[TimelineItem], users: Optional[Mapping[str, UserRef]] = None) -> Dict[str, Contributor]:
    """Map userId -> Contributor over one pass of the timeline. Items without an author are skipped."""
    users = users or {}
    contributors: Dict[str, Contributor] = {}
    for item in timeline:
        if not item.author_id:
            continue
        contributor = contributors.get(item.author_id)
        if contributor is None:
            contributor = Contributor(
                user_id=item.author_id,
                name=display_name_for(users, item.author_id),
                last_active_timestamp=item.timestamp,
                last_active_at=item.occurred_at,
            )
            contributors[item.author_id] = contributor
        contributor.add_action(describe_action(item))
        if (item.occurred_at or EPOCH) > (contributor.last_active_at or EPOCH):
            contributor.last_active_at = item.occurred_at
            contributor.last_active_timestamp = item.timestamp
    return contributors


def contributors_for_display(timeline: Iterable[TimelineItem], users: Optional[Mapping[str, UserRef]] = None) -> Optional[List[Contributor]]:
    """Contributors ordered by most recent activity (ties keep encounter order), or None if there are none."""
    summary = summarize_contributors(timeline, users)
    if not summary:
        return None
    return sorted(summary.values(), key=lambda c: c.last_active_at or EPOCH, reverse=True)
