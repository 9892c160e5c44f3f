"""
Report package: render IssueTimeline results as text, Markdown, CSV, HTML or JSON.
"""

from .renderer import render, strip_markdown

__all__ = ["render", "strip_markdown"]
