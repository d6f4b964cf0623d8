"""Workflow action handlers.

A handler takes (config, context) and returns an ActionResult. Config has
already had its {{trigger.*}} placeholders rendered. Raising is fine; the
engine turns exceptions into failed results.

New handlers register themselves:

    @register_action('my_action')
    def _my_action(config, context):
        ...
"""

import logging
import os
import re
from datetime import date, timedelta

import requests

from .models import ActionConfigError, ActionResult

logger = logging.getLogger('practicehub.workflows.actions')

_HANDLERS = {}

WEBHOOK_TIMEOUT = int(os.environ.get('WEBHOOK_TIMEOUT', '30'))

PRIORITY_TO_TASK_TYPE = {
    'low': 'Regular',
    'normal': 'Regular',
    'medium': 'Medium',
    'high': 'Urgent',
    'urgent': 'Urgent',
}

CLIENT_UPDATABLE_FIELDS = {'display_name', 'email', 'mobile', 'status', 'country_id'}
ENTITY_UPDATABLE_FIELDS = {
    'name', 'business_tax_id', 'is_vat_registered', 'vat_id', 'address',
    'file_access_link', 'entity_type_id', 'tax_jurisdiction_id',
}

_OFFSET_RE = re.compile(r'^\s*([+-]?)\s*(\d+)\s*(day|days|week|weeks|month|months)\s*$', re.IGNORECASE)


def register_action(action_type):
    def decorator(fn):
        _HANDLERS[action_type] = fn
        return fn
    return decorator


def get_handler(action_type):
    return _HANDLERS.get(action_type)


def registered_actions():
    return sorted(_HANDLERS)


def _require(config, *keys):
    missing = [k for k in keys if config.get(k) in (None, '')]
    if missing:
        raise ActionConfigError(f"Missing required config: {', '.join(missing)}")


def _as_int(value, name):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ActionConfigError(f'{name} must be an integer, got {value!r}')


def parse_due_offset(offset, today=None):
    """'+3 days' / '2 weeks' / '-1 month' -> date. A month counts as 30 days."""
    today = today or date.today()
    match = _OFFSET_RE.match(str(offset))
    if not match:
        raise ActionConfigError(f'Invalid due_date_offset: {offset!r}')
    sign, amount, unit = match.groups()
    days = int(amount)
    unit = unit.lower()
    if unit.startswith('week'):
        days *= 7
    elif unit.startswith('month'):
        days *= 30
    if sign == '-':
        days = -days
    return today + timedelta(days=days)


def _user_context(context):
    from core.services.base import UserContext
    return UserContext(user_id=context.user_id, tenant_id=context.tenant_id, email='workflow')


# ════════════════════════════════════════════
# Tasks
# ════════════════════════════════════════════

@register_action('create_task')
def _create_task(config, context):
    from tasks.services.task_service import TaskService

    title = config.get('title') or config.get('task_details')
    if not title:
        raise ActionConfigError('Missing required config: title')
    details = title if not config.get('description') else f"{title}\n\n{config['description']}"

    if config.get('due_date'):
        due_date = config['due_date']
    else:
        due_date = parse_due_offset(config.get('due_date_offset') or '+7 days').isoformat()

    client_id = config.get('client_id')
    data = {
        'task_details': details,
        'client_id': client_id,
        'entity_id': config.get('entity_id'),
        'assignee_id': config.get('assignee_id') or context.user_id,
        'task_category_id': config.get('task_category_id'),
        'service_type_id': config.get('service_type_id'),
        'task_type': PRIORITY_TO_TASK_TYPE.get(str(config.get('priority', 'normal')).lower(), 'Regular'),
        'due_date': due_date,
        'next_to_do': config.get('next_to_do'),
        'is_admin': bool(config.get('is_admin', client_id in (None, ''))),
    }
    task = TaskService().create_task(data, _user_context(context))
    return ActionResult(success=True, data={'task_id': task['id'], 'due_date': due_date})


@register_action('update_task')
def _update_task(config, context):
    from tasks.services.task_service import TaskService

    _require(config, 'task_id')
    updates = config.get('updates')
    if not isinstance(updates, dict) or not updates:
        raise ActionConfigError('updates must be a non-empty object')

    task_id = _as_int(config['task_id'], 'task_id')
    task = TaskService().update_task(task_id, updates, _user_context(context))
    return ActionResult(success=True, data={'task_id': task_id, 'updated': sorted(updates), 'status_id': task.get('status_id')})


@register_action('assign_user')
def _assign_user(config, context):
    from tasks.services.task_service import TaskService

    _require(config, 'task_id', 'assignee_id')
    task_id = _as_int(config['task_id'], 'task_id')
    assignee_id = _as_int(config['assignee_id'], 'assignee_id')
    TaskService().assign(task_id, assignee_id, _user_context(context))
    return ActionResult(success=True, data={'task_id': task_id, 'assignee_id': assignee_id})


# ════════════════════════════════════════════
# Notifications
# ════════════════════════════════════════════

@register_action('send_notification')
def _send_notification(config, context):
    from core.notifications.notify import notify_users
    from core.auth.repositories import UserRepository

    recipients = []
    if config.get('recipient_id'):
        recipients.append(_as_int(config['recipient_id'], 'recipient_id'))
    for rid in config.get('recipient_ids') or []:
        recipients.append(_as_int(rid, 'recipient_ids'))
    if config.get('recipient_role'):
        recipients.extend(UserRepository().get_ids_by_role(context.tenant_id, config['recipient_role']))
    if not recipients and context.user_id:
        recipients.append(context.user_id)
    if not recipients:
        return ActionResult(success=False, error='No notification recipients')

    title = config.get('title') or 'Workflow notification'
    ids = notify_users(
        context.tenant_id, recipients, title,
        message=config.get('message'), link=config.get('link'),
        entity_type=config.get('entity_type'), entity_id=config.get('entity_id'),
        type=config.get('type', 'workflow'))
    if not ids:
        return ActionResult(success=False, error='Notification could not be created')
    return ActionResult(success=True, data={'notification_ids': ids, 'recipients': list(dict.fromkeys(recipients))})


@register_action('send_email')
def _send_email(config, context):
    from core.services.email_service import send_email

    _require(config, 'to', 'subject')
    ok, error = send_email(
        config['to'], config['subject'], config.get('body') or '',
        html=bool(config.get('html', False)), cc=config.get('cc'))
    if not ok:
        return ActionResult(success=False, error=error)
    return ActionResult(success=True, data={'to': config['to'], 'subject': config['subject']})


# ════════════════════════════════════════════
# Clients and entities
# ════════════════════════════════════════════

@register_action('update_client_field')
def _update_client_field(config, context):
    from clients.services.client_service import ClientService

    _require(config, 'client_id', 'field_name')
    field_name = config['field_name']
    if field_name not in CLIENT_UPDATABLE_FIELDS:
        raise ActionConfigError(f'Field {field_name!r} cannot be updated by a workflow')
    client_id = _as_int(config['client_id'], 'client_id')
    ClientService().update_client(client_id, {field_name: config.get('value')}, _user_context(context))
    return ActionResult(success=True, data={'client_id': client_id, field_name: config.get('value')})


@register_action('update_entity_field')
def _update_entity_field(config, context):
    from clients.repositories import EntityRepository

    _require(config, 'entity_id', 'field_name')
    field_name = config['field_name']
    if field_name not in ENTITY_UPDATABLE_FIELDS:
        raise ActionConfigError(f'Field {field_name!r} cannot be updated by a workflow')
    entity_id = _as_int(config['entity_id'], 'entity_id')
    if not EntityRepository().update(context.tenant_id, entity_id, **{field_name: config.get('value')}):
        return ActionResult(success=False, error=f'Entity {entity_id} not found')
    return ActionResult(success=True, data={'entity_id': entity_id, field_name: config.get('value')})


# ════════════════════════════════════════════
# Finance
# ════════════════════════════════════════════

@register_action('create_invoice')
def _create_invoice(config, context):
    from finance.services.invoice_service import InvoiceService

    _require(config, 'client_id')
    line_items = config.get('line_items')
    if not line_items:
        _require(config, 'amount')
        line_items = [{
            'description': config.get('description') or 'Professional services',
            'quantity': 1,
            'unit_price': config['amount'],
            'tax_rate': config.get('tax_rate', 0),
            'task_id': config.get('task_id'),
        }]

    data = {
        'client_id': config['client_id'],
        'entity_id': config.get('entity_id'),
        'task_id': config.get('task_id'),
        'currency_code': config.get('currency'),
        'due_date': config.get('due_date'),
        'notes': config.get('notes'),
        'line_items': line_items,
    }
    invoice = InvoiceService().create_invoice(data, _user_context(context))
    return ActionResult(success=True, data={
        'invoice_id': invoice['id'],
        'invoice_number': invoice['invoice_number'],
        'total_amount': str(invoice['total_amount']),
    })


# ════════════════════════════════════════════
# Outbound and flow control
# ════════════════════════════════════════════

@register_action('call_webhook')
def _call_webhook(config, context):
    _require(config, 'url')
    url = config['url']
    if not str(url).startswith(('http://', 'https://')):
        raise ActionConfigError('url must start with http:// or https://')

    method = str(config.get('method') or 'POST').upper()
    payload = config.get('payload')
    if payload is None:
        payload = {'tenant_id': context.tenant_id, 'workflow_id': context.workflow_id,
                   'trigger': context.trigger_data}

    try:
        response = requests.request(
            method, url,
            json=payload if method not in ('GET', 'DELETE') else None,
            params=payload if method == 'GET' and isinstance(payload, dict) else None,
            headers=config.get('headers') or {},
            timeout=int(config.get('timeout') or WEBHOOK_TIMEOUT),
        )
    except requests.RequestException as e:
        logger.warning(f'Webhook {method} {url} failed: {e}')
        return ActionResult(success=False, error=f'Webhook request failed: {e}')

    try:
        body = response.json()
    except ValueError:
        body = response.text[:2000]

    result = {'status_code': response.status_code, 'body': body}
    if not response.ok:
        return ActionResult(success=False, data=result, error=f'Webhook returned HTTP {response.status_code}')
    return ActionResult(success=True, data=result)


_DELAY_UNITS = {'seconds': 1, 'minutes': 60, 'hours': 3600, 'days': 86400}


@register_action('delay_action')
def _delay(config, context):
    """Record the requested delay. Runs are synchronous, so nothing sleeps."""
    unit = str(config.get('unit') or 'seconds').lower()
    if unit not in _DELAY_UNITS:
        raise ActionConfigError(f'Unknown delay unit {unit!r}')
    try:
        amount = float(config.get('duration', config.get('delay_seconds', 0)) or 0)
    except (TypeError, ValueError):
        raise ActionConfigError('duration must be a number')
    return ActionResult(success=True, data={'delay_seconds': int(amount * _DELAY_UNITS[unit])})


# Names used by the workflow builder UI
_HANDLERS['http_request'] = _call_webhook
_HANDLERS['notification'] = _send_notification
