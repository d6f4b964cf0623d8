"""Workflow automation routes."""
import copy
import logging

from apscheduler.triggers.cron import CronTrigger
from flask import jsonify, request
from flask_login import current_user

from . import workflows_bp
from .actions import registered_actions
from .catalog import (
    TRIGGER_TYPE_NAMES, WORKFLOW_TEMPLATES, action_catalog, trigger_catalog,
)
from .engine import get_engine
from .repositories import WorkflowRepository, ExecutionLogRepository
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.utils.api_helpers import (
    error_response, get_json_or_error, handle_api_errors, parse_int_arg, RateLimiter,
)

logger = logging.getLogger('practicehub.workflows.routes')

_workflow_repo = WorkflowRepository()
_log_repo = ExecutionLogRepository()
_hook_limiter = RateLimiter()

WORKFLOW_STATUSES = ('draft', 'active', 'paused')


def _validate_schedule(config):
    expression = config.get('cron_expression')
    if not expression:
        return 'Schedule triggers need trigger_config.cron_expression'
    try:
        CronTrigger.from_crontab(expression, timezone=config.get('timezone') or 'UTC')
    except (ValueError, LookupError) as e:
        return f'Invalid schedule: {e}'
    return None


def validate_definition(data, partial=False):
    """Return an error message for a bad workflow body, or None."""
    if not partial or 'name' in data:
        if not (data.get('name') or '').strip():
            return 'Workflow name is required'
    if data.get('status') and data['status'] not in WORKFLOW_STATUSES:
        return f"status must be one of {', '.join(WORKFLOW_STATUSES)}"

    triggers = data.get('triggers')
    if triggers is not None:
        if not isinstance(triggers, list):
            return 'triggers must be a list'
        for trigger in triggers:
            trigger_type = trigger.get('trigger_type', 'event')
            if trigger_type not in TRIGGER_TYPE_NAMES:
                return f'Unknown trigger type: {trigger_type}'
            if trigger_type == 'event' and not (trigger.get('trigger_module') and trigger.get('trigger_event')):
                return 'Event triggers need trigger_module and trigger_event'
            if trigger_type == 'schedule':
                message = _validate_schedule(trigger.get('trigger_config') or {})
                if message:
                    return message

    actions = data.get('actions')
    if actions is not None:
        if not isinstance(actions, list):
            return 'actions must be a list'
        known = set(registered_actions())
        for action in actions:
            if action.get('action_type') not in known:
                return f"Unknown action type: {action.get('action_type')}"
    return None


# ============== Workflows ==============

@workflows_bp.route('/api/v1/workflows', methods=['GET'])
@require_permission('workflow-automation', 'read')
def api_list_workflows():
    workflows = _workflow_repo.list_workflows(current_user.tenant_id, request.args.get('status'))
    return jsonify({'success': True, 'workflows': workflows})


@workflows_bp.route('/api/v1/workflows/<int:workflow_id>', methods=['GET'])
@require_permission('workflow-automation', 'read')
def api_get_workflow(workflow_id):
    workflow = _workflow_repo.get_workflow_detail(current_user.tenant_id, workflow_id)
    if not workflow:
        return error_response('Workflow not found', 404)
    workflow['stats'] = _log_repo.get_stats(current_user.tenant_id, workflow_id)
    return jsonify({'success': True, 'workflow': workflow})


@workflows_bp.route('/api/v1/workflows', methods=['POST'])
@require_permission('workflow-automation', 'create')
@handle_api_errors
def api_create_workflow():
    data, error = get_json_or_error()
    if error:
        return error
    message = validate_definition(data)
    if message:
        return error_response(message)

    workflow_id = _workflow_repo.create_workflow(
        current_user.tenant_id, current_user.id, data,
        data.get('triggers') or [], data.get('actions') or [])
    log_event('workflow_created', f"Created workflow {data['name']}", 'workflow', workflow_id)
    return jsonify({'success': True, 'id': workflow_id}), 201


@workflows_bp.route('/api/v1/workflows/<int:workflow_id>', methods=['PUT'])
@require_permission('workflow-automation', 'update')
@handle_api_errors
def api_update_workflow(workflow_id):
    data, error = get_json_or_error()
    if error:
        return error
    message = validate_definition(data, partial=True)
    if message:
        return error_response(message)

    updated = _workflow_repo.update_workflow(
        current_user.tenant_id, workflow_id, data,
        triggers=data.get('triggers'), actions=data.get('actions'))
    if not updated:
        return error_response('Workflow not found', 404)
    log_event('workflow_updated', f'Updated workflow {workflow_id}', 'workflow', workflow_id)
    return jsonify({'success': True})


@workflows_bp.route('/api/v1/workflows/<int:workflow_id>', methods=['DELETE'])
@require_permission('workflow-automation', 'delete')
def api_delete_workflow(workflow_id):
    if not _workflow_repo.delete_workflow(current_user.tenant_id, workflow_id):
        return error_response('Workflow not found', 404)
    log_event('workflow_deleted', f'Deleted workflow {workflow_id}', 'workflow', workflow_id)
    return jsonify({'success': True})


@workflows_bp.route('/api/v1/workflows/<int:workflow_id>/logs', methods=['GET'])
@require_permission('workflow-automation', 'read')
def api_workflow_logs(workflow_id):
    limit = parse_int_arg('limit', 50, minimum=1, maximum=500)
    logs = _log_repo.list_for_workflow(current_user.tenant_id, workflow_id, limit)
    return jsonify({'success': True, 'logs': logs})


@workflows_bp.route('/api/v1/workflows/<int:workflow_id>/test', methods=['POST'])
@require_permission('workflow-automation', 'update')
@handle_api_errors
def api_test_workflow(workflow_id):
    test_data = request.get_json(silent=True) or {}
    record = get_engine().trigger_workflow(
        workflow_id, current_user.tenant_id, test_data.get('test_data', test_data), current_user.id)
    return jsonify({'success': record['execution_status'] == 'success', 'execution': record})


# ============== Builder config ==============

@workflows_bp.route('/api/v1/workflows/config/triggers', methods=['GET'])
@require_permission('workflow-automation', 'read')
def api_trigger_config():
    return jsonify({'success': True, **trigger_catalog()})


@workflows_bp.route('/api/v1/workflows/config/actions', methods=['GET'])
@require_permission('workflow-automation', 'read')
def api_action_config():
    return jsonify({'success': True, 'actions': action_catalog(set(registered_actions()))})


# ============== Templates ==============

@workflows_bp.route('/api/v1/workflow-templates', methods=['GET'])
@require_permission('workflow-automation', 'read')
def api_list_templates():
    templates = [dict(template, key=key) for key, template in WORKFLOW_TEMPLATES.items()]
    return jsonify({'success': True, 'templates': templates})


@workflows_bp.route('/api/v1/workflow-templates/<key>/install', methods=['POST'])
@require_permission('workflow-automation', 'create')
@handle_api_errors
def api_install_template(key):
    template = WORKFLOW_TEMPLATES.get(key)
    if not template:
        return error_response('Template not found', 404)

    overrides = request.get_json(silent=True) or {}
    definition = copy.deepcopy(template)
    definition['name'] = overrides.get('name') or template['name']
    definition['status'] = overrides.get('status', 'draft')

    workflow_id = _workflow_repo.create_workflow(
        current_user.tenant_id, current_user.id, definition,
        definition['triggers'], definition['actions'])
    log_event('workflow_created', f"Installed template {key}", 'workflow', workflow_id)
    return jsonify({'success': True, 'id': workflow_id}), 201


# ============== Inbound webhooks ==============

@workflows_bp.route('/api/v1/workflows/hooks/<token>', methods=['POST'])
def api_webhook_trigger(token):
    """Public endpoint; the token in the URL is the credential."""
    allowed, retry_after = _hook_limiter.is_allowed(f'hook:{token}', max_requests=60, window_seconds=60)
    if not allowed:
        return error_response(f'Rate limited. Retry in {retry_after} seconds.', 429)

    payload = request.get_json(silent=True) or {}
    record = get_engine().fire_webhook(token, payload)
    if record is None:
        return error_response('Unknown or inactive webhook', 404)
    return jsonify({
        'success': True,
        'execution_status': record.get('execution_status'),
        'execution_id': record.get('id'),
    }), 202
