"""Template variables in workflow action configs.

    {"title": "Follow up {{trigger.client.display_name}}", "client_id": "{{trigger.client.id}}"}

`{{trigger.<path>}}` reads from the event data, `{{now}}` and `{{today}}`
give the current UTC timestamp and date. A placeholder whose path does not
resolve is left in the text unchanged. When a string consists of exactly
one placeholder the raw value is substituted, so ids stay integers.
"""

import re
from datetime import datetime, timezone

from .conditions import resolve_path

_PLACEHOLDER = re.compile(r'\{\{\s*([\w.\-]+)\s*\}\}')
_MISSING = object()


def render(config, trigger_data, now=None):
    """Return a copy of `config` with placeholders replaced, walking lists and dicts."""
    now = now or datetime.now(timezone.utc)
    return _render(config, trigger_data or {}, now)


def _render(value, data, now):
    if isinstance(value, str):
        return _render_string(value, data, now)
    if isinstance(value, list):
        return [_render(v, data, now) for v in value]
    if isinstance(value, dict):
        return {k: _render(v, data, now) for k, v in value.items()}
    return value


def _resolve(name, data, now):
    if name == 'now':
        return now.isoformat()
    if name == 'today':
        return now.date().isoformat()
    if name.startswith('trigger.'):
        return resolve_path(data, name[len('trigger.'):], _MISSING)
    return _MISSING


def _render_string(text, data, now):
    whole = _PLACEHOLDER.fullmatch(text.strip())
    if whole:
        value = _resolve(whole.group(1), data, now)
        return text if value is _MISSING else value

    def _sub(match):
        value = _resolve(match.group(1), data, now)
        if value is _MISSING:
            return match.group(0)
        return '' if value is None else str(value)

    return _PLACEHOLDER.sub(_sub, text)
