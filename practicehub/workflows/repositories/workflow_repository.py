"""Repository for workflows, workflow_triggers and workflow_actions."""

import logging
import secrets

from core.base_repository import BaseRepository, to_json

logger = logging.getLogger('practicehub.workflows.workflow_repo')

WORKFLOW_FIELDS = {'name', 'description', 'status', 'is_active'}


def _insert_trigger(cursor, tenant_id, workflow_id, trigger):
    trigger_type = trigger.get('trigger_type', 'event')
    token = trigger.get('webhook_token')
    if trigger_type == 'webhook' and not token:
        token = secrets.token_urlsafe(24)
    cursor.execute('''
        INSERT INTO workflow_triggers (tenant_id, workflow_id, trigger_type, trigger_module,
            trigger_event, trigger_conditions, trigger_config, webhook_token, is_active)
        VALUES (%s, %s, %s, %s, %s, %s::jsonb, %s::jsonb, %s, %s)
        RETURNING id
    ''', (
        tenant_id, workflow_id, trigger_type,
        trigger.get('trigger_module'), trigger.get('trigger_event'),
        to_json(trigger.get('trigger_conditions'), 'null'),
        to_json(trigger.get('trigger_config'), '{}'),
        token, trigger.get('is_active', True),
    ))
    return cursor.fetchone()['id']


def _insert_action(cursor, tenant_id, workflow_id, action, default_order):
    cursor.execute('''
        INSERT INTO workflow_actions (tenant_id, workflow_id, action_type, action_config,
            sequence_order, is_active)
        VALUES (%s, %s, %s, %s::jsonb, %s, %s)
        RETURNING id
    ''', (
        tenant_id, workflow_id, action['action_type'],
        to_json(action.get('action_config'), '{}'),
        action.get('sequence_order', default_order),
        action.get('is_active', True),
    ))
    return cursor.fetchone()['id']


class WorkflowRepository(BaseRepository):

    # ── Workflows ──

    def list_workflows(self, tenant_id, status=None):
        params = [tenant_id]
        where = 'w.tenant_id = %s'
        if status:
            where += ' AND w.status = %s'
            params.append(status)
        return self.query_all(f'''
            SELECT w.*, u.display_name AS created_by_name,
                   (SELECT COUNT(*) FROM workflow_triggers t WHERE t.workflow_id = w.id) AS trigger_count,
                   (SELECT COUNT(*) FROM workflow_actions a WHERE a.workflow_id = w.id) AS action_count,
                   (SELECT MAX(l.created_at) FROM workflow_execution_logs l WHERE l.workflow_id = w.id) AS last_run_at
            FROM workflows w
            LEFT JOIN users u ON u.id = w.created_by
            WHERE {where}
            ORDER BY w.updated_at DESC
        ''', params)

    def get_workflow(self, tenant_id, workflow_id):
        return self.query_one(
            'SELECT * FROM workflows WHERE tenant_id = %s AND id = %s', (tenant_id, workflow_id))

    def get_workflow_detail(self, tenant_id, workflow_id):
        """Workflow dict with embedded `triggers` and `actions` lists."""
        workflow = self.get_workflow(tenant_id, workflow_id)
        if workflow:
            workflow['triggers'] = self.get_triggers(workflow_id)
            workflow['actions'] = self.get_actions(workflow_id, active_only=False)
        return workflow

    def create_workflow(self, tenant_id, created_by, data, triggers=(), actions=()):
        """Insert a workflow with its triggers and actions in one transaction. Returns id."""
        def _work(cursor):
            cursor.execute('''
                INSERT INTO workflows (tenant_id, name, description, status, is_active, created_by)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING id
            ''', (
                tenant_id, data['name'], data.get('description'),
                data.get('status', 'draft'), data.get('is_active', True), created_by,
            ))
            workflow_id = cursor.fetchone()['id']
            for trigger in triggers:
                _insert_trigger(cursor, tenant_id, workflow_id, trigger)
            for idx, action in enumerate(actions, start=1):
                _insert_action(cursor, tenant_id, workflow_id, action, idx)
            return workflow_id
        return self.execute_many(_work)

    def update_workflow(self, tenant_id, workflow_id, data, triggers=None, actions=None):
        """Update fields; when triggers/actions are given they replace the existing ones."""
        def _work(cursor):
            sql, params = self.build_update(
                'workflows', WORKFLOW_FIELDS, data,
                'tenant_id = %s AND id = %s', (tenant_id, workflow_id))
            if sql:
                cursor.execute(sql, params)
            else:
                cursor.execute(
                    'UPDATE workflows SET updated_at = NOW() WHERE tenant_id = %s AND id = %s',
                    (tenant_id, workflow_id))
            if cursor.rowcount == 0:
                return False
            if triggers is not None:
                cursor.execute('DELETE FROM workflow_triggers WHERE workflow_id = %s', (workflow_id,))
                for trigger in triggers:
                    _insert_trigger(cursor, tenant_id, workflow_id, trigger)
            if actions is not None:
                cursor.execute('DELETE FROM workflow_actions WHERE workflow_id = %s', (workflow_id,))
                for idx, action in enumerate(actions, start=1):
                    _insert_action(cursor, tenant_id, workflow_id, action, idx)
            return True
        return self.execute_many(_work)

    def delete_workflow(self, tenant_id, workflow_id):
        return self.execute(
            'DELETE FROM workflows WHERE tenant_id = %s AND id = %s', (tenant_id, workflow_id)
        ) > 0

    # ── Triggers ──

    def get_triggers(self, workflow_id):
        return self.query_all(
            'SELECT * FROM workflow_triggers WHERE workflow_id = %s ORDER BY id', (workflow_id,))

    def find_active_triggers(self, tenant_id, module, event):
        """Active triggers for (module, event) whose workflow is active and published."""
        return self.query_all('''
            SELECT t.*, w.name AS workflow_name, w.status AS workflow_status,
                   w.is_active AS workflow_is_active
            FROM workflow_triggers t
            JOIN workflows w ON w.id = t.workflow_id
            WHERE t.tenant_id = %s
              AND t.trigger_module = %s
              AND t.trigger_event = %s
              AND t.is_active = TRUE
              AND w.is_active = TRUE
              AND w.status = 'active'
            ORDER BY t.id
        ''', (tenant_id, module, event))

    def find_schedule_triggers(self):
        """Active schedule triggers across all tenants."""
        return self.query_all('''
            SELECT t.*, w.name AS workflow_name, w.status AS workflow_status,
                   w.is_active AS workflow_is_active, w.created_by AS workflow_created_by
            FROM workflow_triggers t
            JOIN workflows w ON w.id = t.workflow_id
            WHERE t.trigger_type = 'schedule'
              AND t.is_active = TRUE
              AND w.is_active = TRUE
              AND w.status = 'active'
            ORDER BY t.id
        ''')

    def get_trigger_by_token(self, token):
        return self.query_one('''
            SELECT t.*, w.name AS workflow_name, w.status AS workflow_status,
                   w.is_active AS workflow_is_active
            FROM workflow_triggers t
            JOIN workflows w ON w.id = t.workflow_id
            WHERE t.webhook_token = %s AND t.trigger_type = 'webhook'
        ''', (token,))

    def mark_trigger_fired(self, trigger_id, fired_at):
        return self.execute(
            'UPDATE workflow_triggers SET last_fired_at = %s WHERE id = %s', (fired_at, trigger_id)
        ) > 0

    # ── Actions ──

    def get_actions(self, workflow_id, active_only=True):
        where = 'workflow_id = %s'
        if active_only:
            where += ' AND is_active = TRUE'
        return self.query_all(
            f'SELECT * FROM workflow_actions WHERE {where} ORDER BY sequence_order, id',
            (workflow_id,))
