"""
Data models for contributor views and the assembled issue timeline.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from normalize.models import TimelineItem, UserRef


class Contributor:
    """
    Summary view of one user: every action they took, and when they were last active.

    `actions` is an ordered set of free-text labels; add_action skips repeats.
    """
    def __init__(self, user_id: str, name: str, last_active_timestamp: str, last_active_at: Optional[datetime] = None):
        self.user_id = user_id
        self.name = name
        # ordered set: first-seen order, no duplicates
        self.actions: List[str] = []
        self.last_active_timestamp = last_active_timestamp
        self.last_active_at = last_active_at

    def add_action(self, action: str):
        if action not in self.actions:
            self.actions.append(action)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'name': self.name,
            'actions': list(self.actions),
            'lastActiveTimestamp': self.last_active_timestamp,
        }

    def __repr__(self):
        return f"Contributor({self.user_id!r}, actions={self.actions!r})"


class ActivelyWorkedContributor:
    """
    Attribution of one work-state entry to one user.
    """
    def __init__(self, user_id: str, name: str, state: str):
        self.user_id = user_id
        self.name = name
        self.state = state

    @property
    def key(self) -> tuple:
        return (self.user_id, self.state)

    def to_dict(self) -> Dict[str, Any]:
        return {'userId': self.user_id, 'name': self.name, 'state': self.state}

    def __eq__(self, other):
        if not isinstance(other, ActivelyWorkedContributor):
            return NotImplemented
        return (self.user_id, self.name, self.state) == (other.user_id, other.name, other.state)

    def __hash__(self):
        return hash((self.user_id, self.name, self.state))

    def __repr__(self):
        return f"ActivelyWorkedContributor({self.user_id!r}, {self.state!r})"


class IssueTimeline:
    """
    Output of the engine for one issue, consumed by the report renderer.

    `contributors` is None when no timeline item had an identifiable author.
    `error` is set only when the input could not be processed at all.
    """
    def __init__(self, timeline: Optional[List[TimelineItem]] = None, contributors: Optional[List[Contributor]] = None, actively_worked_contributors: Optional[List[ActivelyWorkedContributor]] = None, users: Optional[Dict[str, UserRef]] = None, issue_id: Optional[str] = None, summary: Optional[str] = None, custom_fields: Optional[List[Dict[str, Any]]] = None, attachments: Optional[List[Dict[str, Any]]] = None, truncated_activities: int = 0, max_activities: int = 0, raw: Any = None, error: Optional[str] = None):
        self.timeline = timeline or []
        self.contributors = contributors
        self.actively_worked_contributors = actively_worked_contributors or []
        self.users = users or {}
        self.issue_id = issue_id
        self.summary = summary
        self.custom_fields = custom_fields or []
        self.attachments = attachments
        self.truncated_activities = truncated_activities
        self.max_activities = max_activities
        self.raw = raw
        self.error = error

    @classmethod
    def failed(cls, diagnostic: str, raw: Any = None) -> 'IssueTimeline':
        return cls(error=diagnostic, raw=raw)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'timeline': [item.to_dict() for item in self.timeline],
            'contributors': [c.to_dict() for c in self.contributors] if self.contributors is not None else None,
            'activelyWorkedContributors': [c.to_dict() for c in self.actively_worked_contributors],
            'users': {uid: u.to_dict() for uid, u in self.users.items()},
            'customFields': list(self.custom_fields),
            'truncatedActivities': self.truncated_activities,
        }
        if self.issue_id:
            data['id'] = self.issue_id
        if self.summary:
            data['summary'] = self.summary
        if self.attachments is not None:
            data['attachments'] = list(self.attachments)
        if self.raw is not None:
            data['_raw'] = self.raw
        if self.error is not None:
            data['error'] = self.error
        return data
