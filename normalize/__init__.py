"""
Normalize package: turn raw issue-tracker records into canonical timeline items.
"""

from .activities import normalize_activity, normalize_activities
from .comments import normalize_comment, normalize_comments

__all__ = ["normalize_activity", "normalize_activities", "normalize_comment", "normalize_comments"]
