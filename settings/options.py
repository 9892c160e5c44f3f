"""
Engine options and attribution rules.
Provides YAML loading, named presets and environment overrides for the timeline engine.
"""
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULTS_FILENAME = 'defaults.yaml'
DEFAULTS_PATH = os.path.join(os.path.dirname(__file__), DEFAULTS_FILENAME)

# environment overrides, applied on top of the YAML values
ENV_MAX_COMMENT_LENGTH = 'ISSUE_TIMELINE_MAX_COMMENT_LENGTH'
ENV_MAX_ACTIVITIES = 'ISSUE_TIMELINE_MAX_ACTIVITIES'
ENV_INCLUDE_RAW_DATA = 'ISSUE_TIMELINE_INCLUDE_RAW_DATA'

_TRUE_STRINGS = ('1', 'true', 'yes', 'on')


def _as_name_list(value: Any, default: Iterable[str]) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v)]
    return list(default)


class AttributionRules:
    """
    Field and workflow-state names that drive ownership attribution.

    All comparisons are case-insensitive equality. Entering a work state credits the
    current assignee; entering a review state credits the author of the transition.
    """
    def __init__(self, assignee_field: str = 'Assignee', stage_fields: Optional[Iterable[str]] = None, work_states: Optional[Iterable[str]] = None, review_states: Optional[Iterable[str]] = None):
        self.assignee_field = assignee_field or 'Assignee'
        self.stage_fields = _as_name_list(stage_fields, ['Stage', 'State'])
        self.work_states = _as_name_list(work_states, ['In Progress'])
        self.review_states = _as_name_list(review_states, ['QA In Progress'])

    def is_assignee_field(self, field: Optional[str]) -> bool:
        return bool(field) and field.lower() == self.assignee_field.lower()

    def is_stage_field(self, field: Optional[str]) -> bool:
        return bool(field) and field.lower() in {f.lower() for f in self.stage_fields}

    def is_work_state(self, state: Optional[str]) -> bool:
        return bool(state) and state.lower() in {s.lower() for s in self.work_states}

    def is_review_state(self, state: Optional[str]) -> bool:
        return bool(state) and state.lower() in {s.lower() for s in self.review_states}

    @classmethod
    def from_dict(cls, data: Any) -> 'AttributionRules':
        data = data if isinstance(data, dict) else {}
        return cls(
            assignee_field=str(data.get('assignee_field') or 'Assignee'),
            stage_fields=data.get('stage_fields'),
            work_states=data.get('work_states'),
            review_states=data.get('review_states'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'assignee_field': self.assignee_field,
            'stage_fields': list(self.stage_fields),
            'work_states': list(self.work_states),
            'review_states': list(self.review_states),
        }


class EngineOptions:
    """
    Per-call options for building an issue timeline.

    max_activities: cap on activities kept from the sorted set (0 = no limit).
    include_raw_data: attach the source record verbatim to the result (debug only).
    """
    def __init__(self, max_comment_length: int = 1000, max_activities: int = 40, include_raw_data: bool = False, include_activities: bool = True, include_attachments: bool = True, rules: Optional[AttributionRules] = None):
        self.max_comment_length = max_comment_length
        self.max_activities = max_activities
        self.include_raw_data = include_raw_data
        self.include_activities = include_activities
        self.include_attachments = include_attachments
        self.rules = rules or AttributionRules()

    @classmethod
    def from_dict(cls, data: Any) -> 'EngineOptions':
        data = data if isinstance(data, dict) else {}
        defaults = cls()
        return cls(
            max_comment_length=_coerce_int(data.get('max_comment_length'), defaults.max_comment_length),
            max_activities=_coerce_int(data.get('max_activities'), defaults.max_activities),
            include_raw_data=bool(data.get('include_raw_data', defaults.include_raw_data)),
            include_activities=bool(data.get('include_activities', defaults.include_activities)),
            include_attachments=bool(data.get('include_attachments', defaults.include_attachments)),
            rules=AttributionRules.from_dict(data.get('attribution')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_comment_length': self.max_comment_length,
            'max_activities': self.max_activities,
            'include_raw_data': self.include_raw_data,
            'include_activities': self.include_activities,
            'include_attachments': self.include_attachments,
            'attribution': self.rules.to_dict(),
        }


def _coerce_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        coerced = int(value)
    except (TypeError, ValueError):
        return default
    return coerced if coerced >= 0 else default


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")
    return doc


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge; override wins."""
    merged = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def apply_env_overrides(values: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Apply ISSUE_TIMELINE_* environment overrides; invalid values are ignored."""
    env = os.environ if environ is None else environ
    values = dict(values)
    for env_name, key in ((ENV_MAX_COMMENT_LENGTH, 'max_comment_length'), (ENV_MAX_ACTIVITIES, 'max_activities')):
        raw = env.get(env_name)
        if raw is None or raw == '':
            continue
        try:
            parsed = int(raw)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", env_name, raw)
            continue
        if parsed < 0:
            logger.warning("Ignoring negative %s=%r", env_name, raw)
            continue
        values[key] = parsed
    raw_flag = env.get(ENV_INCLUDE_RAW_DATA)
    if raw_flag:
        values['include_raw_data'] = raw_flag.strip().lower() in _TRUE_STRINGS
    return values


def load_options(path: Optional[str] = None, preset: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> EngineOptions:
    """
    Load EngineOptions from the defaults YAML (or `path`), merge a named preset over it,
    then apply environment overrides.

    A missing or unreadable file falls back to built-in defaults; an unknown preset raises ValueError.
    """
    path = path or DEFAULTS_PATH
    base: Dict[str, Any] = {}
    if os.path.exists(path):
        try:
            base = _read_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as ex:
            logger.warning("Could not read options from %s: %s; using defaults", path, ex)
            base = {}
    if preset:
        base = _merge(base, load_preset(preset, path))
    base.pop('presets', None)
    return EngineOptions.from_dict(apply_env_overrides(base, environ))


def load_preset(preset_name: str, path: Optional[str] = None) -> Dict[str, Any]:
    """
    Return the raw override mapping for the named preset.

    Raises ValueError if the file is missing, unreadable, or has no such preset.
    """
    path = path or DEFAULTS_PATH
    if not os.path.exists(path):
        raise ValueError(f"Options file not found at: {path}")
    try:
        doc = _read_yaml(path)
    except (OSError, yaml.YAMLError) as ex:
        raise ValueError(f"Failed to load presets from {path}: {ex}")
    presets = doc.get('presets') if isinstance(doc.get('presets'), dict) else {}
    if preset_name not in presets:
        raise ValueError(f"Preset '{preset_name}' not found in {path}")
    preset_map = presets.get(preset_name)
    return dict(preset_map) if isinstance(preset_map, dict) else {}


def list_presets(path: Optional[str] = None) -> list:
    """Return available preset names (or an empty list when the file can't be read)."""
    path = path or DEFAULTS_PATH
    if not os.path.exists(path):
        return []
    try:
        doc = _read_yaml(path)
    except (OSError, ValueError, yaml.YAMLError):
        return []
    presets = doc.get('presets')
    return list(presets.keys()) if isinstance(presets, dict) else []
