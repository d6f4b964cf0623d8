"""TaskService: task writes that keep status history and publish workflow events."""

import logging

from core.services.base import UserContext
from tasks.exceptions import TaskError, TaskNotFoundError, TaskStatusNotFoundError
from tasks.repositories import TaskRepository, TaskStatusRepository
from workflows.engine import emit

logger = logging.getLogger('practicehub.tasks.service')

TASK_TYPES = ('Regular', 'Medium', 'Urgent')
COMPLETED_STATUS_NAME = 'completed'


def _to_id(value, field):
    """Ids from JSON may arrive as strings; None and '' mean no value."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise TaskError(f'{field} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise TaskError(f'{field} must be an integer: {value!r}')


class TaskService:

    def __init__(self):
        self._task_repo = TaskRepository()
        self._status_repo = TaskStatusRepository()

    def _get_or_raise(self, tenant_id, task_id):
        task = self._task_repo.get(tenant_id, task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        return task

    def _validate(self, data):
        if 'task_type' in data and data['task_type'] not in TASK_TYPES:
            raise TaskError(f"task_type must be one of {', '.join(TASK_TYPES)}")
        if not data.get('is_admin') and 'client_id' in data and not data.get('client_id'):
            raise TaskError('client_id is required for client tasks')

    def create_task(self, data, user: UserContext):
        """Create a task. Without status_id the task starts in the rank-1 status."""
        if not (data.get('task_details') or '').strip():
            raise TaskError('task_details is required')
        self._validate(data)

        data = dict(data)
        if not data.get('status_id'):
            new_status = self._status_repo.get_by_rank(user.tenant_id, 1)
            if not new_status:
                raise TaskStatusNotFoundError('No "New" status (rank 1) is configured')
            data['status_id'] = new_status['id']
        data.setdefault('task_type', 'Regular')

        task = self._task_repo.create(user.tenant_id, data)
        logger.info(f"Task {task['id']} created for tenant {user.tenant_id}")
        if not task.get('needs_approval'):
            emit('tasks', 'task_created', {'task': task}, user.tenant_id, user.user_id)
        return task

    def update_task(self, task_id, updates, user: UserContext):
        """Update fields. Status and assignee changes go through their own paths for events."""
        before = self._get_or_raise(user.tenant_id, task_id)
        updates = dict(updates)
        self._validate(dict(updates, is_admin=updates.get('is_admin', before.get('is_admin'))))

        status_id = _to_id(updates.pop('status_id', None), 'status_id')
        if 'assignee_id' in updates:
            assignee_id = _to_id(updates.pop('assignee_id'), 'assignee_id')
        else:
            assignee_id = before.get('assignee_id')

        if updates:
            self._task_repo.update(user.tenant_id, task_id, **updates)
        if assignee_id != before.get('assignee_id'):
            self.assign(task_id, assignee_id, user)
        if status_id and status_id != before.get('status_id'):
            self.change_status(task_id, status_id, user)

        return self._task_repo.get(user.tenant_id, task_id)

    def change_status(self, task_id, status_id, user: UserContext):
        status_id = _to_id(status_id, 'status_id')
        task = self._get_or_raise(user.tenant_id, task_id)
        status = self._status_repo.get(user.tenant_id, status_id)
        if not status:
            raise TaskStatusNotFoundError(f'Status {status_id} not found')
        if task.get('status_id') == status_id:
            return task

        self._task_repo.change_status(
            user.tenant_id, task_id, task.get('status_id'), status_id, user.user_id)
        updated = self._task_repo.get(user.tenant_id, task_id)

        payload = {
            'task': updated,
            'old_status_id': task.get('status_id'),
            'old_status': task.get('status_name'),
            'new_status_id': status_id,
            'new_status': status['name'],
        }
        emit('tasks', 'status_changed', payload, user.tenant_id, user.user_id)
        if status['name'].strip().lower() == COMPLETED_STATUS_NAME:
            emit('tasks', 'task_completed', {'task': updated}, user.tenant_id, user.user_id)
        return updated

    def assign(self, task_id, assignee_id, user: UserContext):
        assignee_id = _to_id(assignee_id, 'assignee_id')
        task = self._get_or_raise(user.tenant_id, task_id)
        self._task_repo.update(user.tenant_id, task_id, assignee_id=assignee_id)
        updated = self._task_repo.get(user.tenant_id, task_id)
        emit('tasks', 'task_assigned', {
            'task': updated,
            'old_assignee_id': task.get('assignee_id'),
            'assignee_id': assignee_id,
        }, user.tenant_id, user.user_id)
        return updated

    def delete_task(self, task_id, user: UserContext):
        if not self._task_repo.delete(user.tenant_id, task_id):
            raise TaskNotFoundError(task_id)
        logger.info(f'Task {task_id} deleted by user {user.user_id}')
