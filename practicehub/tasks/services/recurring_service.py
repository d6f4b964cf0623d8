"""Recurring compliance tasks.

A recurring task is a template: `is_recurring` with a compliance
frequency and duration. Once a day the scheduler asks this service to
create the instance for each template's next period as soon as it falls
inside the tenant's lead time (`recurring_task_lead_days`, default 14).
Generated instances wait for approval (`needs_approval`) before they join
the regular task list.
"""

import logging
from datetime import date

from core.notifications.notify import notify_users
from core.auth.repositories import UserRepository
from core.services.base import UserContext
from core.tenants.repositories import TenantRepository, TenantSettingsRepository
from tasks.exceptions import TaskError, TaskNotFoundError
from tasks.repositories import TaskRepository, TaskStatusRepository
from tasks.services import compliance_periods
from workflows.engine import emit

logger = logging.getLogger('practicehub.tasks.recurring')

DEFAULT_LEAD_DAYS = 14

# Template fields copied onto every generated instance
_COPIED_FIELDS = (
    'is_admin', 'task_type', 'client_id', 'entity_id', 'service_type_id',
    'task_category_id', 'assignee_id', 'task_details', 'next_to_do',
    'compliance_frequency', 'compliance_duration', 'compliance_deadline',
    'currency', 'service_rate',
)


class RecurringTaskService:

    def __init__(self):
        self._task_repo = TaskRepository()
        self._status_repo = TaskStatusRepository()
        self._settings_repo = TenantSettingsRepository()
        self._tenant_repo = TenantRepository()
        self._user_repo = UserRepository()

    # ════════════════════════════════════════════
    # Generation
    # ════════════════════════════════════════════

    def generate_for_tenant(self, tenant_id, today=None):
        """Create due instances for every recurring template of a tenant. Returns the created tasks."""
        today = today or date.today()
        lead_days = self._settings_repo.get_int_setting(
            tenant_id, 'recurring_task_lead_days', DEFAULT_LEAD_DAYS)

        new_status = self._status_repo.get_by_rank(tenant_id, 1)
        if not new_status:
            logger.warning(f'No "New" status (rank 1) for tenant {tenant_id}; skipping recurring tasks')
            return []

        created = []
        for template in self._task_repo.get_recurring_templates(tenant_id):
            period = compliance_periods.next_period(
                template['compliance_frequency'], template['compliance_duration'], today)
            if period is None:
                logger.warning(
                    f"Task {template['id']} has unsupported frequency {template['compliance_frequency']!r}")
                continue

            if self._task_repo.period_instance_exists(tenant_id, template, period.start, period.end):
                continue

            due_date = compliance_periods.due_date_for(period.end)
            if (due_date - today).days > lead_days:
                continue

            instance = {k: template.get(k) for k in _COPIED_FIELDS}
            instance.update({
                'due_date': due_date,
                'status_id': new_status['id'],
                'is_recurring': False,
                'is_auto_generated': True,
                'needs_approval': True,
                'parent_task_id': template['id'],
                'compliance_year': str(period.start.year),
                'compliance_start_date': period.start,
                'compliance_end_date': period.end,
            })
            task = self._task_repo.create(tenant_id, instance)
            label = compliance_periods.period_label(
                period.start, template['compliance_frequency'], template['compliance_duration'])
            logger.info(
                f"Generated task {task['id']} from template {template['id']} for {label} "
                f"({period.start.isoformat()}..{period.end.isoformat()})")
            created.append((task, label))

        if created:
            labels = sorted({label for _, label in created})
            notify_users(
                tenant_id, self._user_repo.get_admin_ids(tenant_id),
                f'{len(created)} recurring task(s) need approval',
                message=', '.join(labels),
                link='/tasks/auto-generated', type='approval')
        return [task for task, _ in created]

    def generate_all(self, today=None):
        """Run generation for every active tenant. Returns {tenant_id: created_count}."""
        counts = {}
        for tenant_id in self._tenant_repo.get_active_ids():
            try:
                counts[tenant_id] = len(self.generate_for_tenant(tenant_id, today))
            except Exception as e:
                logger.error(f'Recurring task generation failed for tenant {tenant_id}: {e}')
                counts[tenant_id] = 0
        logger.info(f'Recurring task generation completed for {len(counts)} tenants')
        return counts

    # ════════════════════════════════════════════
    # Approval
    # ════════════════════════════════════════════

    def _pending(self, tenant_id, task_id):
        task = self._task_repo.get(tenant_id, task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        if not task.get('is_auto_generated') or not task.get('needs_approval'):
            raise TaskError(f'Task {task_id} is not an auto-generated task awaiting approval')
        return task

    def approve(self, task_id, user: UserContext):
        """Turn a generated instance into a regular task and publish tasks.task_created."""
        task = self._pending(user.tenant_id, task_id)

        updates = {'needs_approval': False, 'is_auto_generated': False}
        start = task.get('compliance_start_date')
        # the generated end is kept so period_instance_exists() still matches it
        if start and task.get('compliance_frequency') and not task.get('compliance_end_date'):
            if isinstance(start, str):
                start = date.fromisoformat(start[:10])
            updates['compliance_end_date'] = compliance_periods.period_end_for(
                start, task['compliance_frequency'], task.get('compliance_duration'))

        self._task_repo.update(user.tenant_id, task_id, **updates)
        approved = self._task_repo.get(user.tenant_id, task_id)
        logger.info(f'Auto-generated task {task_id} approved by user {user.user_id}')
        emit('tasks', 'task_created', {'task': approved}, user.tenant_id, user.user_id)
        return approved

    def reject(self, task_id, user: UserContext):
        self._pending(user.tenant_id, task_id)
        self._task_repo.delete(user.tenant_id, task_id)
        logger.info(f'Auto-generated task {task_id} rejected by user {user.user_id}')

    def approve_all(self, user: UserContext):
        """Approve every pending instance of the tenant. Returns the approved ids."""
        approved = []
        for task in self._task_repo.list_pending_approval(user.tenant_id):
            self.approve(task['id'], user)
            approved.append(task['id'])
        return approved
