"""
Custom field and attachment flattening helpers.
"""
from typing import Any, Dict, List, Optional

from normalize.models import UserRef
from normalize.util import _as_dict, _as_list, _get, format_date, format_file_size, format_period, register_user


def _user_label(raw: Any) -> Optional[str]:
    user = _as_dict(raw)
    return user.get('name') or user.get('fullName') or user.get('login')


def _flatten_value(field: Dict[str, Any], out: Dict[str, Any], user_map: Optional[Dict[str, UserRef]]):
    field_type = field.get('$type')
    value = field.get('value')
    if value is None:
        return
    if field_type in ('SingleEnumIssueCustomField', 'StateIssueCustomField'):
        if isinstance(value, dict):
            out['value'] = value.get('name')
            out['valueId'] = value.get('id')
            color = _get(value, 'color', 'background')
            if color:
                out['color'] = color
            if field_type == 'StateIssueCustomField' and 'isResolved' in value:
                out['isResolved'] = bool(value.get('isResolved'))
    elif field_type == 'MultiEnumIssueCustomField':
        out['value'] = [v.get('name') for v in _as_list(value) if isinstance(v, dict)]
    elif field_type == 'SingleUserIssueCustomField':
        if isinstance(value, dict):
            register_user(user_map, value)
            out['value'] = _user_label(value)
            out['valueId'] = value.get('id')
    elif field_type == 'MultiUserIssueCustomField':
        for v in _as_list(value):
            register_user(user_map, v)
        out['value'] = [_user_label(v) for v in _as_list(value) if isinstance(v, dict)]
    elif field_type == 'PeriodIssueCustomField':
        if isinstance(value, dict):
            out['value'] = format_period(value.get('id'))
            out['valueId'] = value.get('id')
    elif isinstance(value, dict):
        out['value'] = value.get('name') or value.get('text') or value.get('presentation')
    else:
        out['value'] = value


def flatten_custom_fields(raw_fields: Any, user_map: Optional[Dict[str, UserRef]] = None) -> List[Dict[str, Any]]:
    """Flatten `customFields` entries to {name, value, valueId?, color?, isResolved?}.

    Entries without a name are skipped; values that can't be interpreted become None.
    """
    flattened = []
    for field in _as_list(raw_fields):
        if not isinstance(field, dict) or not field.get('name'):
            continue
        out: Dict[str, Any] = {'name': str(field['name']), 'value': None}
        _flatten_value(field, out, user_map)
        out = {k: v for k, v in out.items() if k in ('name', 'value') or v is not None}
        flattened.append(out)
    return flattened


def flatten_attachments(raw_attachments: Any, user_map: Optional[Dict[str, UserRef]] = None) -> List[Dict[str, Any]]:
    attachments = []
    for att in _as_list(raw_attachments):
        if not isinstance(att, dict):
            continue
        entry = {
            'id': att.get('id'),
            'name': att.get('name') or 'Unnamed attachment',
            'url': att.get('url'),
            'mimeType': att.get('mimeType'),
            'size': format_file_size(att['size']) if att.get('size') is not None else None,
            'created': format_date(att.get('created')),
            'author': register_user(user_map, att.get('author')),
        }
        attachments.append({k: v for k, v in entry.items() if v is not None})
    return attachments
