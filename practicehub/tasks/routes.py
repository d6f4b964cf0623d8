"""Task, status and auto-generated task routes."""
from flask import jsonify, request
from flask_login import current_user

from . import tasks_bp
from .repositories import TaskRepository, TaskStatusRepository
from .services import TaskService, RecurringTaskService
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.services.base import UserContext
from core.utils.api_helpers import (
    admin_required, error_response, get_json_or_error, handle_api_errors, parse_int_arg,
)

_task_repo = TaskRepository()
_status_repo = TaskStatusRepository()
_task_service = TaskService()
_recurring_service = RecurringTaskService()


def _ctx():
    return UserContext.from_user(current_user, request.remote_addr)


def _bool_arg(name):
    value = request.args.get(name)
    if value is None or value == '' or value == 'all':
        return None
    return value.lower() in ('1', 'true', 'yes')


# ════════════════════════════════════════════
# Tasks
# ════════════════════════════════════════════

@tasks_bp.route('/api/v1/tasks', methods=['GET'])
@require_permission('tasks', 'read')
def api_list_tasks():
    tasks = _task_repo.list(
        current_user.tenant_id,
        client_id=request.args.get('client_id', type=int),
        entity_id=request.args.get('entity_id', type=int),
        assignee_id=request.args.get('assignee_id', type=int),
        status_id=request.args.get('status_id', type=int),
        is_admin=_bool_arg('is_admin'),
        auto_generated=_bool_arg('auto_generated') if 'auto_generated' in request.args else False,
        search=request.args.get('search'),
        limit=parse_int_arg('limit', None, minimum=1, maximum=1000),
        offset=parse_int_arg('offset', 0, minimum=0),
    )
    return jsonify({'success': True, 'tasks': tasks})


@tasks_bp.route('/api/v1/tasks/<int:task_id>', methods=['GET'])
@require_permission('tasks', 'read')
def api_get_task(task_id):
    task = _task_repo.get(current_user.tenant_id, task_id)
    if not task:
        return error_response('Task not found', 404)
    task['status_history'] = _task_repo.get_history(current_user.tenant_id, task_id)
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/v1/tasks', methods=['POST'])
@require_permission('tasks', 'create')
@handle_api_errors
def api_create_task():
    data, error = get_json_or_error()
    if error:
        return error
    task = _task_service.create_task(data, _ctx())
    log_event('task_created', f"Created task {task['id']}", 'task', task['id'])
    return jsonify({'success': True, 'task': task}), 201


@tasks_bp.route('/api/v1/tasks/<int:task_id>', methods=['PUT'])
@require_permission('tasks', 'update')
@handle_api_errors
def api_update_task(task_id):
    data, error = get_json_or_error()
    if error:
        return error
    task = _task_service.update_task(task_id, data, _ctx())
    log_event('task_updated', f'Updated task {task_id}', 'task', task_id, {'fields': sorted(data)})
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/v1/tasks/<int:task_id>/status', methods=['PUT'])
@require_permission('tasks', 'update')
@handle_api_errors
def api_change_task_status(task_id):
    data, error = get_json_or_error()
    if error:
        return error
    if not data.get('status_id'):
        return error_response('status_id is required')
    task = _task_service.change_status(task_id, int(data['status_id']), _ctx())
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/v1/tasks/<int:task_id>', methods=['DELETE'])
@require_permission('tasks', 'delete')
@handle_api_errors
def api_delete_task(task_id):
    _task_service.delete_task(task_id, _ctx())
    log_event('task_deleted', f'Deleted task {task_id}', 'task', task_id)
    return jsonify({'success': True})


# ════════════════════════════════════════════
# Auto-generated tasks
# ════════════════════════════════════════════

@tasks_bp.route('/api/v1/tasks/auto-generated', methods=['GET'])
@require_permission('tasks', 'read')
def api_list_auto_generated():
    return jsonify({'success': True, 'tasks': _task_repo.list_pending_approval(current_user.tenant_id)})


@tasks_bp.route('/api/v1/tasks/auto-generated/generate', methods=['POST'])
@admin_required
@handle_api_errors
def api_generate_recurring():
    """Run recurring generation for the caller's tenant now instead of waiting for the daily job."""
    created = _recurring_service.generate_for_tenant(current_user.tenant_id)
    return jsonify({'success': True, 'created': len(created), 'tasks': created})


@tasks_bp.route('/api/v1/tasks/<int:task_id>/approve', methods=['POST'])
@require_permission('tasks', 'approve')
@handle_api_errors
def api_approve_task(task_id):
    task = _recurring_service.approve(task_id, _ctx())
    log_event('task_approved', f'Approved generated task {task_id}', 'task', task_id)
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/v1/tasks/<int:task_id>/reject', methods=['POST'])
@require_permission('tasks', 'approve')
@handle_api_errors
def api_reject_task(task_id):
    _recurring_service.reject(task_id, _ctx())
    log_event('task_rejected', f'Rejected generated task {task_id}', 'task', task_id)
    return jsonify({'success': True})


@tasks_bp.route('/api/v1/tasks/auto-generated/approve-all', methods=['POST'])
@require_permission('tasks', 'approve')
@handle_api_errors
def api_approve_all():
    approved = _recurring_service.approve_all(_ctx())
    return jsonify({'success': True, 'approved': approved})


# ════════════════════════════════════════════
# Statuses
# ════════════════════════════════════════════

@tasks_bp.route('/api/v1/task-statuses', methods=['GET'])
@require_permission('tasks', 'read')
def api_list_statuses():
    return jsonify({'success': True, 'statuses': _status_repo.list(current_user.tenant_id)})


@tasks_bp.route('/api/v1/task-statuses', methods=['POST'])
@require_permission('setup', 'create')
@handle_api_errors
def api_create_status():
    data, error = get_json_or_error()
    if error:
        return error
    if not (data.get('name') or '').strip() or data.get('rank') is None:
        return error_response('name and rank are required')
    status = _status_repo.create(
        current_user.tenant_id, data['name'].strip(), int(data['rank']), data.get('description'))
    return jsonify({'success': True, 'status': status}), 201


@tasks_bp.route('/api/v1/task-statuses/<int:status_id>', methods=['PUT'])
@require_permission('setup', 'update')
@handle_api_errors
def api_update_status(status_id):
    data, error = get_json_or_error()
    if error:
        return error
    if not _status_repo.update(current_user.tenant_id, status_id, **data):
        return error_response('Status not found', 404)
    return jsonify({'success': True})


@tasks_bp.route('/api/v1/task-statuses/<int:status_id>', methods=['DELETE'])
@require_permission('setup', 'delete')
def api_delete_status(status_id):
    if not _status_repo.delete(current_user.tenant_id, status_id):
        return error_response('Status not found', 404)
    return jsonify({'success': True})
