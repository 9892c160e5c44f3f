"""
Correlate package: views over the merged issue timeline.
"""

from .attribution import attribute_work
from .contributors import contributors_for_display, summarize_contributors
from .timeline import merge_timeline

__all__ = ["attribute_work", "contributors_for_display", "merge_timeline", "summarize_contributors"]
