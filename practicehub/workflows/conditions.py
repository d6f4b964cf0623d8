"""Evaluate workflow trigger conditions against event data.

Two shapes are accepted.

Field rules, one dict or a list of them (a list is AND'd):
    {"field": "client.status", "operator": "equals", "value": "Active"}

    Operators: equals, not_equals, contains, starts_with, ends_with,
    greater_than, less_than, in, not_in, is_empty, is_not_empty,
    before_today, after_today. The date operators take an optional day
    offset as value: {"field": "task.due_date", "operator": "before_today",
    "value": 3} holds for anything due earlier than three days from today.
    An unknown operator does not block the trigger.

Groups:
    {"any": [rule, rule]}   at least one holds
    {"all": [rule, rule]}   every one holds

Suffix style, for flat dicts without a "field" key (all keys AND'd):
    {"amount_gte": 5000, "status_in": ["sent", "overdue"], "priority": "Urgent"}

    Suffixes: _gte, _gt, _lte, _lt, _eq, _neq, _in, _not_in, _exists,
    _contains; no suffix means equality. Keys may be dotted paths.
"""

import logging
from datetime import date, datetime, timedelta

logger = logging.getLogger('practicehub.workflows.conditions')

_MISSING = object()

# Longest suffix first so '_not_in' is not read as '_in'
_SUFFIXES = [
    ('_not_in', 'not_in'),
    ('_contains', 'contains'),
    ('_exists', 'exists'),
    ('_gte', 'gte'),
    ('_gt', 'gt'),
    ('_lte', 'lte'),
    ('_lt', 'lt'),
    ('_neq', 'neq'),
    ('_eq', 'eq'),
    ('_in', 'in'),
]


def resolve_path(data, path, default=None):
    """Look up a dotted path ('client.status', 'items.0.amount') in nested dicts/lists."""
    value = _lookup(data, path)
    return default if value is _MISSING else value


def _lookup(data, path):
    current = data
    for part in str(path).split('.'):
        if isinstance(current, dict):
            if part not in current:
                return _MISSING
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.lstrip('-').isdigit():
            idx = int(part)
            if idx >= len(current) or idx < -len(current):
                return _MISSING
            current = current[idx]
        else:
            return _MISSING
    return current


def _to_number(value):
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_empty(value):
    return value is None or value == '' or value == [] or value == {}


def _to_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _today():
    return date.today()


def _compare_to_today(operator, actual, offset_days):
    """Date field against today, shifted by `offset_days` (default 0)."""
    day = _to_date(actual)
    offset = _to_number(offset_days) if offset_days is not None else 0
    if day is None or offset is None:
        return False
    reference = _today() + timedelta(days=int(offset))
    return day < reference if operator == 'before_today' else day > reference


def evaluate(conditions, data) -> bool:
    """True when `conditions` hold for `data`. Errors are logged and count as no match."""
    try:
        return _evaluate(conditions, data or {})
    except Exception as e:
        logger.error(f'Error evaluating conditions {conditions!r}: {e}')
        return False


def _evaluate(conditions, data):
    if not conditions:
        return True

    if isinstance(conditions, list):
        return all(_evaluate(c, data) for c in conditions)

    if not isinstance(conditions, dict):
        logger.warning(f'Ignoring malformed condition: {conditions!r}')
        return True

    if 'any' in conditions and len(conditions) == 1:
        group = conditions['any'] or []
        return any(_evaluate(c, data) for c in group) if group else True
    if 'all' in conditions and len(conditions) == 1:
        return all(_evaluate(c, data) for c in conditions['all'] or [])

    if 'field' in conditions:
        return evaluate_rule(conditions, data)

    return evaluate_suffix_conditions(conditions, data)


def evaluate_rule(rule: dict, data: dict) -> bool:
    """Evaluate one {field, operator, value} rule."""
    field = rule.get('field')
    operator = rule.get('operator', 'equals')
    expected = rule.get('value')
    actual = resolve_path(data, field) if field else None

    if operator == 'equals':
        return actual == expected
    if operator == 'not_equals':
        return actual != expected
    if operator in ('contains', 'starts_with', 'ends_with'):
        if actual is None or expected is None:
            return False
        if operator == 'contains':
            if isinstance(actual, (list, tuple)):
                return expected in actual
            return str(expected) in str(actual)
        if operator == 'starts_with':
            return str(actual).startswith(str(expected))
        return str(actual).endswith(str(expected))
    if operator in ('greater_than', 'less_than'):
        a, e = _to_number(actual), _to_number(expected)
        if a is None or e is None:
            return False
        return a > e if operator == 'greater_than' else a < e
    if operator == 'in':
        return isinstance(expected, (list, tuple)) and actual in expected
    if operator == 'not_in':
        return isinstance(expected, (list, tuple)) and actual not in expected
    if operator == 'is_empty':
        return _is_empty(actual)
    if operator == 'is_not_empty':
        return not _is_empty(actual)
    if operator in ('before_today', 'after_today'):
        return _compare_to_today(operator, actual, expected)

    logger.warning(f'Unknown condition operator {operator!r}, treating as match')
    return True


def evaluate_suffix_conditions(conditions: dict, data: dict) -> bool:
    """Evaluate suffix-operator keys ('amount_gte': 5000). All must hold."""
    for key, expected in conditions.items():
        field, op = parse_key(key)
        actual = _lookup(data, field)

        if op == 'exists':
            present = actual is not _MISSING
            if bool(expected) != present:
                return False
            continue

        if actual is _MISSING:
            actual = None

        if op in (None, 'eq'):
            if actual != expected:
                return False
        elif op == 'neq':
            if actual == expected:
                return False
        elif op in ('gte', 'gt', 'lte', 'lt'):
            a, e = _to_number(actual), _to_number(expected)
            if a is None or e is None:
                return False
            if op == 'gte' and not a >= e:
                return False
            if op == 'gt' and not a > e:
                return False
            if op == 'lte' and not a <= e:
                return False
            if op == 'lt' and not a < e:
                return False
        elif op == 'in':
            if not isinstance(expected, list) or actual not in expected:
                return False
        elif op == 'not_in':
            if not isinstance(expected, list) or actual in expected:
                return False
        elif op == 'contains':
            if actual is None or expected is None or str(expected) not in str(actual):
                return False

    return True


def parse_key(key: str) -> tuple:
    """'amount_gte' -> ('amount', 'gte'); bare keys -> (key, None)."""
    for suffix, op_name in _SUFFIXES:
        if key.endswith(suffix):
            field = key[:-len(suffix)]
            if field:
                return field, op_name
    return key, None
