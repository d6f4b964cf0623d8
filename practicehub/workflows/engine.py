"""WorkflowEngine: matches domain events to stored triggers and runs their actions.

Domain services never call the engine directly; they call emit():

    from workflows.engine import emit
    emit('tasks', 'task_created', {'task': task}, tenant_id, user_id)

A run never raises into the caller. Every run is written to
workflow_execution_logs with per-action results.
"""

import json
import logging
import threading
import time
from datetime import datetime, timedelta, timezone

from apscheduler.triggers.cron import CronTrigger

from . import conditions, hooks, templating
from .actions import get_handler
from .models import (
    ActionContext, ActionResult, WorkflowEvent, WorkflowNotFoundError,
)
from .repositories import WorkflowRepository, ExecutionLogRepository
from core.utils.logging_config import LogContext, log_with_context

logger = logging.getLogger('practicehub.workflows.engine')

# Actions can emit events of their own (create_task -> tasks.task_created);
# nested emits beyond this depth are dropped.
MAX_EVENT_DEPTH = 3


def _elapsed_ms(start):
    return int((time.monotonic() - start) * 1000)


def _parse_timestamp(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class WorkflowEngine:

    def __init__(self):
        self._workflow_repo = WorkflowRepository()
        self._log_repo = ExecutionLogRepository()

    # ════════════════════════════════════════════
    # Public API
    # ════════════════════════════════════════════

    def process_event(self, event: WorkflowEvent):
        """Run every active workflow whose trigger matches the event. Returns execution records."""
        try:
            triggers = self._workflow_repo.find_active_triggers(
                event.tenant_id, event.module, event.event)
        except Exception as e:
            logger.error(f'Failed to load triggers for {event.module}.{event.event}: {e}')
            return []

        executions = []
        for trigger in triggers:
            if not conditions.evaluate(trigger.get('trigger_conditions'), event.data):
                logger.debug(f"Trigger {trigger['id']} conditions not met for {event.module}.{event.event}")
                continue
            executions.append(self.execute_workflow(trigger, event))
        return executions

    def execute_workflow(self, trigger, event: WorkflowEvent):
        """Run the workflow's actions in sequence_order and log the run.

        A failed action does not stop the ones after it; the run is
        'success' only when every action succeeded.
        """
        workflow_id = trigger['workflow_id']
        start = time.monotonic()
        action_logs = []
        error_message = None

        with LogContext(tenant_id=event.tenant_id, workflow_id=workflow_id):
            try:
                actions = self._workflow_repo.get_actions(workflow_id)
                context = ActionContext(
                    trigger_data=event.data, tenant_id=event.tenant_id,
                    user_id=event.user_id, workflow_id=workflow_id)
                for action in actions:
                    result = self.execute_action(action, context)
                    action_logs.append(result.to_log(action))

                failed = [a for a in action_logs if not a['success']]
                status = 'failed' if failed else 'success'
                if failed:
                    error_message = f'{len(failed)} of {len(action_logs)} actions failed'
            except Exception as e:
                logger.exception(f'Workflow {workflow_id} execution failed: {e}')
                status = 'failed'
                error_message = str(e)

            record = {
                'workflow_id': workflow_id,
                'trigger_id': trigger.get('id'),
                'tenant_id': event.tenant_id,
                'trigger_event_data': event.data,
                'execution_status': status,
                'action_logs': action_logs,
                'error_message': error_message,
                'execution_time_ms': _elapsed_ms(start),
            }

            try:
                row = self._log_repo.create(
                    event.tenant_id, workflow_id, trigger.get('id'), event.data,
                    status, action_logs, error_message, record['execution_time_ms'])
                if row:
                    record['id'] = row.get('id')
                    record['created_at'] = row.get('created_at')
            except Exception as e:
                logger.error(f'Failed to write execution log for workflow {workflow_id}: {e}')

            logger.info(
                f"Workflow {workflow_id} ({trigger.get('workflow_name', '')}) {status} "
                f"in {record['execution_time_ms']}ms, {len(action_logs)} actions")
        return record

    def execute_action(self, action, context: ActionContext) -> ActionResult:
        """Render the action's config templates and call its handler. Never raises."""
        start = time.monotonic()
        action_type = action.get('action_type')
        handler = get_handler(action_type)
        if handler is None:
            return ActionResult(
                success=False,
                error=f'No handler found for action type: {action_type}',
                execution_time_ms=_elapsed_ms(start))

        try:
            config = action.get('action_config') or {}
            if isinstance(config, str):
                config = json.loads(config) if config.strip() else {}
            config = templating.render(config, context.trigger_data)
            result = handler(config, context)
        except Exception as e:
            log_with_context(logger, logging.ERROR, f'Action {action_type} failed: {e}',
                             action_id=action.get('id'), action_type=action_type)
            result = ActionResult(success=False, error=str(e))

        result.execution_time_ms = _elapsed_ms(start)
        return result

    def trigger_workflow(self, workflow_id, tenant_id, test_data=None, user_id=None):
        """Run a workflow by hand with `test_data` as the event payload."""
        workflow = self._workflow_repo.get_workflow(tenant_id, workflow_id)
        if not workflow:
            raise WorkflowNotFoundError(f'Workflow {workflow_id} not found')

        triggers = self._workflow_repo.get_triggers(workflow_id)
        if not triggers:
            raise WorkflowNotFoundError(f'Workflow {workflow_id} has no trigger')

        trigger = dict(triggers[0], workflow_name=workflow.get('name'))
        event = WorkflowEvent(
            module=trigger.get('trigger_module') or 'manual',
            event=trigger.get('trigger_event') or 'manual',
            data=test_data or {},
            tenant_id=tenant_id,
            user_id=user_id,
        )
        return self.execute_workflow(trigger, event)

    def fire_webhook(self, token, payload):
        """Run the workflow behind a webhook trigger token. Returns the record, or None if unknown/inactive."""
        trigger = self._workflow_repo.get_trigger_by_token(token)
        if not trigger or not trigger.get('is_active') or not trigger.get('workflow_is_active') \
                or trigger.get('workflow_status') != 'active':
            return None

        event = WorkflowEvent(
            module='webhook', event='received', data=payload or {},
            tenant_id=trigger['tenant_id'])
        if not conditions.evaluate(trigger.get('trigger_conditions'), event.data):
            return {'workflow_id': trigger['workflow_id'], 'execution_status': 'skipped'}
        return self.execute_workflow(trigger, event)

    def run_scheduled(self, now=None):
        """Fire schedule triggers whose next cron time since the last fire has passed.

        Missed runs are not replayed one by one: a trigger fires at most once per call.
        Returns the number of workflows run.
        """
        now = now or datetime.now(timezone.utc)
        try:
            triggers = self._workflow_repo.find_schedule_triggers()
        except Exception as e:
            logger.error(f'Failed to load schedule triggers: {e}')
            return 0

        fired = 0
        for trigger in triggers:
            try:
                if self._fire_if_due(trigger, now):
                    fired += 1
            except Exception as e:
                logger.error(f"Schedule trigger {trigger.get('id')} failed: {e}")
        return fired

    def _fire_if_due(self, trigger, now):
        config = trigger.get('trigger_config') or {}
        expression = config.get('cron_expression')
        if not expression:
            logger.warning(f"Schedule trigger {trigger['id']} has no cron_expression")
            return False
        try:
            cron = CronTrigger.from_crontab(expression, timezone=config.get('timezone') or 'UTC')
        except (ValueError, LookupError) as e:
            logger.error(f"Schedule trigger {trigger['id']} has invalid cron '{expression}': {e}")
            return False

        since = _parse_timestamp(trigger.get('last_fired_at') or trigger.get('created_at')) or now
        next_fire = cron.get_next_fire_time(None, since + timedelta(seconds=1))
        if next_fire is None or next_fire > now:
            return False

        event = WorkflowEvent(
            module='schedule', event='cron',
            data={'scheduled_for': next_fire.isoformat(), 'fired_at': now.isoformat(),
                  'cron_expression': expression},
            tenant_id=trigger['tenant_id'],
            user_id=trigger.get('workflow_created_by'))
        ran = conditions.evaluate(trigger.get('trigger_conditions'), event.data)
        if ran:
            self.execute_workflow(trigger, event)
        self._workflow_repo.mark_trigger_fired(trigger['id'], now)
        return ran


# ════════════════════════════════════════════
# Module-level entry points
# ════════════════════════════════════════════

_engine = None
_engine_lock = threading.Lock()
_local = threading.local()


def get_engine() -> WorkflowEngine:
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = WorkflowEngine()
    return _engine


def emit(module, event, data, tenant_id, user_id=None):
    """Publish a domain event: fire in-process hooks, then run matching workflows.

    Returns the list of execution records (empty when nothing matched).
    """
    payload = dict(data or {})
    hooks.fire(f'{module}.{event}', dict(payload, tenant_id=tenant_id, user_id=user_id))

    depth = getattr(_local, 'depth', 0)
    if depth >= MAX_EVENT_DEPTH:
        logger.warning(f'Dropping nested event {module}.{event} at depth {depth}')
        return []

    _local.depth = depth + 1
    try:
        return get_engine().process_event(
            WorkflowEvent(module=module, event=event, data=payload,
                          tenant_id=tenant_id, user_id=user_id))
    except Exception as e:
        logger.error(f'Workflow processing failed for {module}.{event}: {e}')
        return []
    finally:
        _local.depth = depth
