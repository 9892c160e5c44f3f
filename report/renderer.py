"""
Report renderer: generate text/Markdown/CSV/HTML/JSON summaries from IssueTimeline results.
HTML is rendered through the Jinja2 template report/templates/report.html.j2.
"""

from html import escape
from typing import Iterable, List, Optional, Union
import csv
import io
import json
import logging
import os
import re

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from correlate.models import IssueTimeline
from normalize.models import ActivityKind, TimelineItem, activity_kind_for
from normalize.util import display_name_for

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')
ACTIVITY_TEXT_PREVIEW = 100

Results = Union[IssueTimeline, Iterable[IssueTimeline]]


def strip_markdown(text: Optional[str]) -> str:
    """Remove common markdown formatting, keeping the readable text."""
    if not text:
        return ''
    result = text
    # fenced code: keep the body, drop the fence and language line
    result = re.sub(r'```[^\n]*\n?([\s\S]*?)```', r'\1', result)
    result = re.sub(r'`([^`]+)`', r'\1', result)
    result = re.sub(r'^#{1,6}\s+(.+)$', r'\1', result, flags=re.M)
    result = re.sub(r'\*\*(.+?)\*\*', r'\1', result)
    result = re.sub(r'\*(.+?)\*', r'\1', result)
    result = re.sub(r'\b_(.+?)_\b', r'\1', result)
    result = re.sub(r'!\[.*?\]\(.+?\)(\{.*?\})?', '[IMAGE]', result)
    result = re.sub(r'\[(.+?)\]\(.+?\)', r'\1', result)
    result = re.sub(r'^---+$', '', result, flags=re.M)
    result = result.replace('|', ' ')
    result = re.sub(r'^[\s\-|]+$', '', result, flags=re.M)
    result = re.sub(r'^\s*-\s+', '', result, flags=re.M)
    result = re.sub(r'^\s*\d+\.\s+', '', result, flags=re.M)
    return result


def _as_results(results: Optional[Results]) -> List[IssueTimeline]:
    if results is None:
        return []
    if isinstance(results, IssueTimeline):
        return [results]
    return list(results)


def _comment_text(text: Optional[str], preserve_markdown: bool) -> str:
    return (text or '') if preserve_markdown else strip_markdown(text)


def _author_name(result: IssueTimeline, item: TimelineItem) -> str:
    return display_name_for(result.users, item.author_id) if item.author_id else 'System'


def _join_values(values: Optional[List[str]]) -> str:
    return ', '.join(values) if values else 'Empty'


def describe_activity(result: IssueTimeline, item: TimelineItem) -> str:
    """One-line description of an activity, e.g. 'Jane changed Stage: Open → In Progress'."""
    author = _author_name(result, item)
    if item.is_comment:
        text = item.text or ''
        if len(text) > ACTIVITY_TEXT_PREVIEW:
            text = text[:ACTIVITY_TEXT_PREVIEW] + '...'
        return f"{author} added a comment: {text}"
    kind = activity_kind_for(item.activity_type)
    if kind is ActivityKind.ISSUE_CREATED:
        return f"{author} created the issue"
    if item.field or kind in (ActivityKind.FIELD_CHANGE, ActivityKind.SIMPLE_VALUE):
        field = item.field or 'Unknown field'
        return f"{author} changed {field}: {_join_values(item.removed_values)} → {_join_values(item.added_values)}"
    return f"{author} performed action: {item.activity_type}"


def _activity_history(result: IssueTimeline) -> List[TimelineItem]:
    """Activity-derived items, newest first."""
    items = [i for i in result.timeline if i.is_activity or i.source_type]
    return list(reversed(items))


def _header(result: IssueTimeline) -> Optional[str]:
    if result.issue_id and result.summary:
        return f"{result.issue_id}: {result.summary}"
    return result.issue_id or result.summary


def render_text(result: IssueTimeline, preserve_markdown: bool = True) -> str:
    """Plain-text report with CONTRIBUTORS, ACTIVELY WORKED, ACTIVITY HISTORY and COMMENTS sections."""
    if result.error:
        return f"ERROR: {result.error}"
    lines: List[str] = []
    header = _header(result)
    if header:
        lines.extend([header, ''])

    if result.contributors:
        lines.append('CONTRIBUTORS')
        for c in result.contributors:
            lines.append(f"{c.name}: {', '.join(c.actions)} (last active {c.last_active_timestamp})")
        lines.append('')

    if result.actively_worked_contributors:
        lines.append('ACTIVELY WORKED')
        for a in result.actively_worked_contributors:
            lines.append(f"{a.name}: {a.state}")
        lines.append('')

    lines.append('ACTIVITY HISTORY')
    history = _activity_history(result)
    if not history:
        lines.append('No activity records found')
    else:
        if result.truncated_activities:
            lines.append(f"[Only showing the {result.max_activities} most recent activities]")
        for index, item in enumerate(history, start=1):
            lines.append(f"{index}. {item.timestamp} - {describe_activity(result, item)}")

    comments = [i for i in result.timeline if i.is_comment and not i.source_type]
    if comments:
        lines.extend(['', f"COMMENTS ({len(comments)})"])
        for c in comments:
            pinned = ' [pinned]' if c.payload.is_pinned else ''
            lines.append(f"{_author_name(result, c)} ({c.timestamp}){pinned}:")
            lines.append(_comment_text(c.text, preserve_markdown))
    return "\n".join(lines)


def render_markdown(result: IssueTimeline, preserve_markdown: bool = True) -> str:
    """Render a Markdown section for a single issue."""
    title = _header(result) or 'Issue'
    md = [f"# {title}\n"]
    if result.error:
        md.append(f"_Error: {result.error}_")
        return "\n".join(md)

    md.append("## Timeline\n")
    if not result.timeline:
        md.append("_No timeline entries._")
    for item in result.timeline:
        if item.is_comment and not item.source_type:
            text = _comment_text(item.text, preserve_markdown).replace('\n', ' ')
            md.append(f"- **{item.timestamp}** {_author_name(result, item)} commented: {text}")
        else:
            md.append(f"- **{item.timestamp}** {describe_activity(result, item)}")

    if result.contributors:
        md.append("\n## Contributors\n")
        for c in result.contributors:
            md.append(f"- **{c.name}**: {', '.join(c.actions)}")

    md.append("\n## Actively Worked Contributors\n")
    if result.actively_worked_contributors:
        md.append("| User | State |")
        md.append("| --- | --- |")
        for a in result.actively_worked_contributors:
            md.append(f"| {a.name} | {a.state} |")
    else:
        md.append("_Nobody entered a work state._")
    return "\n".join(md)


def render_csv(results: Results) -> str:
    """One row per contributor, across every issue given."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['issue', 'user_id', 'name', 'actions', 'last_active', 'worked_states'])
    for result in _as_results(results):
        worked = {}
        for a in result.actively_worked_contributors:
            worked.setdefault(a.user_id, []).append(a.state)
        for c in result.contributors or []:
            writer.writerow([result.issue_id or '', c.user_id, c.name, '; '.join(c.actions), c.last_active_timestamp, '; '.join(worked.get(c.user_id, []))])
    return output.getvalue()


def render_json(results: Results) -> str:
    """Export results as JSON: a single object for one issue, a list otherwise."""
    if isinstance(results, IssueTimeline):
        return json.dumps(results.to_dict(), indent=2, default=str)
    return json.dumps([r.to_dict() for r in _as_results(results)], indent=2, default=str)


def render_html_fallback(results: Results) -> str:
    """Simple HTML used when the template can't be rendered."""
    html = ["<html><body>", "<h1>Issue Timeline Report</h1>"]
    items = _as_results(results)
    if not items:
        html.append("<p>No issues to report.</p>")
    for result in items:
        html.append(f"<h2>{escape(_header(result) or 'Issue')}</h2>")
        if result.error:
            html.append(f"<p>Error: {escape(result.error)}</p>")
            continue
        for a in result.actively_worked_contributors:
            html.append(f"<p>{escape(a.name)}: {escape(a.state)}</p>")
    html.append("</body></html>")
    return "\n".join(html)


def _template_env() -> Environment:
    return Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape(['html', 'xml', 'html.j2']))


def render_html(results: Results, generated_at: Optional[str] = None, preserve_markdown: bool = True) -> str:
    items = _as_results(results)
    try:
        tmpl = _template_env().get_template('report.html.j2')
        return tmpl.render(
            results=items,
            generated_at=generated_at,
            describe=describe_activity,
            display_name=display_name_for,
            comment_text=lambda text: _comment_text(text, preserve_markdown),
        )
    except TemplateError:
        logger.exception("HTML template rendering failed; using plain fallback")
        return render_html_fallback(items)


def render(results: Optional[Results] = None, fmt: str = 'text', preserve_markdown: bool = True, generated_at: Optional[str] = None) -> str:
    """Main render function.

    Accepts one IssueTimeline or a list of them. Text and markdown output for several
    issues are joined with a horizontal rule.
    """
    fmt_l = (fmt or 'text').lower()
    if fmt_l == 'csv':
        return render_csv(results)
    if fmt_l in ('html', 'htm'):
        return render_html(results, generated_at=generated_at, preserve_markdown=preserve_markdown)
    if fmt_l in ('json', 'js'):
        return render_json(results if results is not None else [])
    items = _as_results(results)
    if fmt_l in ('md', 'markdown'):
        return '\n\n---\n\n'.join(render_markdown(r, preserve_markdown) for r in items)
    return '\n\n---\n\n'.join(render_text(r, preserve_markdown) for r in items)
