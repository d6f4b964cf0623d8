"""Task Repository: tenant-scoped task CRUD, status history and recurrence lookups."""

from core.base_repository import BaseRepository

TASK_FIELDS = (
    'is_admin', 'task_type', 'client_id', 'entity_id', 'service_type_id',
    'task_category_id', 'assignee_id', 'due_date', 'status_id', 'task_details',
    'next_to_do', 'is_recurring', 'compliance_frequency', 'compliance_duration',
    'compliance_year', 'compliance_start_date', 'compliance_end_date',
    'compliance_deadline', 'currency', 'service_rate', 'invoice_id',
    'is_auto_generated', 'needs_approval', 'parent_task_id',
)

_SELECT = '''
    SELECT t.*, s.name AS status_name, s.rank AS status_rank,
           c.display_name AS client_name, e.name AS entity_name,
           u.display_name AS assignee_name, tc.name AS task_category_name,
           st.name AS service_type_name
    FROM tasks t
    LEFT JOIN task_statuses s ON s.id = t.status_id
    LEFT JOIN clients c ON c.id = t.client_id
    LEFT JOIN entities e ON e.id = t.entity_id
    LEFT JOIN users u ON u.id = t.assignee_id
    LEFT JOIN task_categories tc ON tc.id = t.task_category_id
    LEFT JOIN service_types st ON st.id = t.service_type_id
'''


class TaskRepository(BaseRepository):

    def get(self, tenant_id, task_id):
        return self.query_one(_SELECT + ' WHERE t.tenant_id = %s AND t.id = %s', (tenant_id, task_id))

    def list(self, tenant_id, client_id=None, entity_id=None, assignee_id=None,
             status_id=None, is_admin=None, auto_generated=None, search=None,
             limit=None, offset=0):
        """Filtered task list. auto_generated=True returns instances awaiting approval."""
        conditions, params = ['t.tenant_id = %s'], [tenant_id]
        if client_id:
            conditions.append('t.client_id = %s')
            params.append(client_id)
        if entity_id:
            conditions.append('t.entity_id = %s')
            params.append(entity_id)
        if assignee_id:
            conditions.append('t.assignee_id = %s')
            params.append(assignee_id)
        if status_id:
            conditions.append('t.status_id = %s')
            params.append(status_id)
        if is_admin is not None:
            conditions.append('t.is_admin = %s')
            params.append(is_admin)
        if auto_generated is True:
            conditions.append('t.is_auto_generated = TRUE AND t.needs_approval = TRUE')
        elif auto_generated is False:
            conditions.append('(t.needs_approval = FALSE OR t.needs_approval IS NULL)')
        if search:
            conditions.append('t.task_details ILIKE %s')
            params.append(f'%{search}%')

        sql = _SELECT + f' WHERE {" AND ".join(conditions)} ORDER BY t.due_date NULLS LAST, t.id'
        if limit:
            sql += ' LIMIT %s OFFSET %s'
            params.extend([limit, offset])
        return self.query_all(sql, params)

    def list_all(self, tenant_id):
        """Every task of the tenant, joined with its status; used by reports."""
        return self.query_all(_SELECT + ' WHERE t.tenant_id = %s ORDER BY t.id', (tenant_id,))

    def create(self, tenant_id, data):
        """Insert a task from the known keys in `data`. Returns the new row."""
        columns = ['tenant_id'] + [k for k in TASK_FIELDS if k in data]
        values = [tenant_id] + [data[k] for k in TASK_FIELDS if k in data]
        row = self.execute(
            f'INSERT INTO tasks ({", ".join(columns)}) '
            f'VALUES ({", ".join(["%s"] * len(columns))}) RETURNING id',
            values, returning=True)
        return self.get(tenant_id, row['id'])

    def update(self, tenant_id, task_id, **fields):
        sql, params = self.build_update(
            'tasks', set(TASK_FIELDS), fields, 'tenant_id = %s AND id = %s', (tenant_id, task_id))
        if not sql:
            return False
        return self.execute(sql, params) > 0

    def delete(self, tenant_id, task_id):
        return self.execute(
            'DELETE FROM tasks WHERE tenant_id = %s AND id = %s', (tenant_id, task_id)) > 0

    # ── Status history ──

    def change_status(self, tenant_id, task_id, from_status_id, to_status_id, changed_by):
        """Set the status and append a history row in one transaction."""
        def _work(cursor):
            cursor.execute('''
                UPDATE tasks SET status_id = %s, updated_at = NOW()
                WHERE tenant_id = %s AND id = %s
            ''', (to_status_id, tenant_id, task_id))
            if cursor.rowcount == 0:
                return False
            cursor.execute('''
                INSERT INTO task_status_history (tenant_id, task_id, from_status_id, to_status_id, changed_by)
                VALUES (%s, %s, %s, %s, %s)
            ''', (tenant_id, task_id, from_status_id, to_status_id, changed_by))
            return True
        return self.execute_many(_work)

    def get_history(self, tenant_id, task_id):
        return self.query_all('''
            SELECT h.*, fs.name AS from_status_name, ts.name AS to_status_name,
                   u.display_name AS changed_by_name
            FROM task_status_history h
            LEFT JOIN task_statuses fs ON fs.id = h.from_status_id
            LEFT JOIN task_statuses ts ON ts.id = h.to_status_id
            LEFT JOIN users u ON u.id = h.changed_by
            WHERE h.tenant_id = %s AND h.task_id = %s
            ORDER BY h.changed_at DESC
        ''', (tenant_id, task_id))

    # ── Recurrence ──

    def get_recurring_templates(self, tenant_id):
        return self.query_all('''
            SELECT * FROM tasks
            WHERE tenant_id = %s AND is_recurring = TRUE
              AND compliance_frequency IS NOT NULL AND compliance_frequency != ''
              AND compliance_duration IS NOT NULL AND compliance_duration != ''
            ORDER BY id
        ''', (tenant_id,))

    def period_instance_exists(self, tenant_id, template, start_date, end_date):
        """True when a task for the template's category/service type already covers the period."""
        row = self.query_one('''
            SELECT 1 FROM tasks
            WHERE tenant_id = %s
              AND client_id IS NOT DISTINCT FROM %s
              AND entity_id IS NOT DISTINCT FROM %s
              AND task_category_id IS NOT DISTINCT FROM %s
              AND service_type_id IS NOT DISTINCT FROM %s
              AND compliance_start_date = %s
              AND compliance_end_date = %s
            LIMIT 1
        ''', (
            tenant_id, template.get('client_id'), template.get('entity_id'),
            template.get('task_category_id'), template.get('service_type_id'),
            start_date, end_date,
        ))
        return row is not None

    def list_pending_approval(self, tenant_id):
        return self.list(tenant_id, auto_generated=True)
