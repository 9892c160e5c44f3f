"""
Build a unified timeline, contributor summary and work attribution for one issue.

The input is an already-fetched issue record (a dict with `activities`, `comments`,
`customFields` and `attachments`). Nothing here performs I/O.
"""
import logging
from typing import Any, Dict, Optional

from correlate.attribution import attribute_work
from correlate.contributors import contributors_for_display
from correlate.models import IssueTimeline
from correlate.timeline import cap_activities, merge_timeline
from normalize.activities import normalize_activities
from normalize.comments import normalize_comments
from normalize.fields import flatten_attachments, flatten_custom_fields
from normalize.models import UserRef
from settings.options import EngineOptions

logger = logging.getLogger(__name__)

GENERIC_ERROR = 'Error building issue timeline'


def _issue_label(issue: Dict[str, Any]) -> Optional[str]:
    for key in ('idReadable', 'id'):
        value = issue.get(key)
        if value not in (None, ''):
            return str(value)
    return None


def _build(issue: Dict[str, Any], options: EngineOptions) -> IssueTimeline:
    users: Dict[str, UserRef] = {}

    activity_items = []
    dropped = 0
    if options.include_activities:
        activity_items = normalize_activities(issue.get('activities'), user_map=users, max_comment_length=options.max_comment_length)
        activity_items, dropped = cap_activities(activity_items, options.max_activities)
        if dropped:
            logger.debug("Capped activities at %d, dropped %d", options.max_activities, dropped)

    comment_items = normalize_comments(issue.get('comments'), max_comment_length=options.max_comment_length, user_map=users)
    custom_fields = flatten_custom_fields(issue.get('customFields'), user_map=users)
    attachments = flatten_attachments(issue.get('attachments'), user_map=users) if options.include_attachments else None

    timeline = merge_timeline(activity_items, comment_items)
    summary = issue.get('summary')
    return IssueTimeline(
        timeline=timeline,
        contributors=contributors_for_display(timeline, users),
        actively_worked_contributors=attribute_work(timeline, users, options.rules),
        users=users,
        issue_id=_issue_label(issue),
        summary=summary if isinstance(summary, str) else None,
        custom_fields=custom_fields,
        attachments=attachments,
        truncated_activities=dropped,
        max_activities=options.max_activities,
        raw=issue if options.include_raw_data else None,
    )


def build_issue_timeline(issue: Any, options: Optional[EngineOptions] = None) -> IssueTimeline:
    """
    Normalize, merge, summarize and attribute one issue record.

    Never raises: a non-object input or an unexpected failure produces an empty
    IssueTimeline with `error` set to a short diagnostic.
    """
    options = options or EngineOptions()
    if not isinstance(issue, dict):
        diagnostic = f"Expected an issue object, got {type(issue).__name__}"
        logger.warning(diagnostic)
        return IssueTimeline.failed(diagnostic)
    try:
        return _build(issue, options)
    except Exception:
        logger.exception("Failed to build timeline for issue %s", _issue_label(issue))
        return IssueTimeline.failed(GENERIC_ERROR, raw=issue if options.include_raw_data else None)


def build_issue_timelines(issues: Any, options: Optional[EngineOptions] = None) -> list:
    """Build one IssueTimeline per record; a non-list input is treated as a single issue."""
    if isinstance(issues, list):
        return [build_issue_timeline(issue, options) for issue in issues]
    return [build_issue_timeline(issues, options)]
