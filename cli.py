"""
CLI entry point for issue-timeline. Wires the pipeline: load issue JSON -> build timeline -> report
"""

import argparse
import json
import logging
import os
import sys
import webbrowser
from datetime import datetime, timezone

from engine import build_issue_timelines
from report.renderer import render
from settings.options import EngineOptions, list_presets, load_options

logger = logging.getLogger(__name__)

FILE_FORMATS = ('html', 'md', 'csv', 'json')
EXPORT_FORMATS = ('html', 'md', 'csv', 'json')


def _load_json_file(path: str, description: str):
    """Attempt to load a JSON file and return the parsed object or None on failure.
    Errors are printed here; callers just check for None.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        print(f"Failed to read {description} {path}: {e}")
        return None


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def _default_basename() -> str:
    return f"issue_timeline_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}"


def _write_report_file(path_base: str, ext: str, content: str, open_html: bool = False) -> str:
    """Write the rendered content to a file and optionally open HTML in the browser."""
    out_path = path_base if path_base.lower().endswith(f".{ext}") else f"{path_base}.{ext}"
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    # newline='' is safe for CSV on Windows and harmless for other formats
    with open(out_path, 'w', encoding='utf-8', newline='') as fh:
        fh.write(content)
    print(f"Wrote report to {out_path}")
    if open_html:
        try:
            _open_file_in_browser(out_path)
        except webbrowser.Error:
            print('Failed to open browser automatically; file saved at', out_path)
    return out_path


def write_output(fmt: str, rendered: str, args):
    """Write file formats to disk (default name when --out-file is empty), print text to stdout."""
    out_file = (args.out_file or '').strip()
    if fmt in FILE_FORMATS and (out_file or fmt != 'json'):
        _write_report_file(out_file or _default_basename(), fmt, rendered, open_html=(args.open and fmt == 'html'))
    elif out_file:
        _write_report_file(out_file, 'txt', rendered)
    else:
        print(rendered)


def resolve_options(args) -> EngineOptions:
    """YAML defaults and preset, then environment, then explicit CLI flags.

    Raises ValueError for an unknown preset or unreadable config file.
    """
    if args.config and not os.path.exists(args.config):
        raise ValueError(f"Config file not found: {args.config}")
    options = load_options(path=args.config or None, preset=args.preset or None)
    if args.max_comment_length is not None:
        if args.max_comment_length < 0:
            raise ValueError("--max-comment-length must be >= 0")
        options.max_comment_length = args.max_comment_length
    if args.max_activities is not None:
        if args.max_activities < 0:
            raise ValueError("--max-activities must be >= 0")
        options.max_activities = args.max_activities
    if args.include_raw_data:
        options.include_raw_data = True
    if args.no_activities:
        options.include_activities = False
    if args.no_attachments:
        options.include_attachments = False
    return options


def run_pipeline(args, issues, options: EngineOptions):
    """Build timelines and render them; returns (fmt, rendered, results)."""
    results = build_issue_timelines(issues, options)
    fmt = (args.output or 'text').lower()
    single = results[0] if len(results) == 1 else results
    rendered = render(single, fmt=fmt, preserve_markdown=not args.strip_markdown, generated_at=datetime.now(timezone.utc).isoformat())
    return fmt, rendered, results


def _export_all(args, results) -> None:
    base = (args.out_file or '').strip() or _default_basename()
    generated_at = datetime.now(timezone.utc).isoformat()
    single = results[0] if len(results) == 1 else results
    for ffmt in EXPORT_FORMATS:
        content = render(single, fmt=ffmt, preserve_markdown=not args.strip_markdown, generated_at=generated_at)
        _write_report_file(base, ffmt, content, open_html=(ffmt == 'html' and args.open))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Issue timeline and contributor attribution report")
    parser.add_argument("--issue-file", type=str, default="", help="Path to a JSON file holding one issue object or an array of issues")
    parser.add_argument("--output", type=str, default="text", help="Output format (text, md, csv, html, json)")
    parser.add_argument("--out-file", type=str, default="", help="Output file path. If omitted, html/md/csv get a default name and text/json go to stdout")
    parser.add_argument("--open", action="store_true", help="Open the generated HTML report in the default browser")
    parser.add_argument("--export-all", action="store_true", help="Export HTML, MD, CSV and JSON copies using --out-file as the base name")
    parser.add_argument("--config", type=str, default="", help="Path to an options YAML file (defaults to the bundled settings/defaults.yaml)")
    parser.add_argument("--preset", type=str, default="", help="Named preset from the options file")
    parser.add_argument("--list-presets", action="store_true", help="List available presets and exit")
    parser.add_argument("--max-comment-length", type=int, default=None, help="Truncate comment text beyond this many characters (overrides ISSUE_TIMELINE_MAX_COMMENT_LENGTH)")
    parser.add_argument("--max-activities", type=int, default=None, help="Keep only the N most recent activities, 0 for no limit (overrides ISSUE_TIMELINE_MAX_ACTIVITIES)")
    parser.add_argument("--include-raw-data", action="store_true", help="Attach the source issue record to JSON output")
    parser.add_argument("--no-activities", action="store_true", help="Ignore the activity stream (comments only)")
    parser.add_argument("--no-attachments", action="store_true", help="Leave attachments out of the result")
    parser.add_argument("--strip-markdown", action="store_true", help="Strip markdown formatting from comment text in reports")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.list_presets:
        for name in list_presets(args.config or None):
            print(name)
        return 0

    if not args.issue_file:
        parser.error("--issue-file is required")

    try:
        options = resolve_options(args)
    except ValueError as ex:
        parser.error(str(ex))

    issues = _load_json_file(args.issue_file, 'issue file')
    if issues is None:
        return 1

    fmt, rendered, results = run_pipeline(args, issues, options)
    if args.export_all:
        _export_all(args, results)
    else:
        write_output(fmt, rendered, args)
    for r in results:
        if r.error:
            logger.warning("Issue %s: %s", r.issue_id or '?', r.error)
    return 0


if __name__ == '__main__':
    sys.exit(main())
