"""Invoice Repository: invoices and their line items."""

from core.base_repository import BaseRepository

_HEADER_COLUMNS = (
    'invoice_number', 'client_id', 'entity_id', 'task_id', 'status', 'issue_date',
    'due_date', 'currency_code', 'subtotal', 'tax_amount', 'discount_amount',
    'total_amount', 'amount_paid', 'amount_due', 'notes', 'terms_and_conditions',
)

_LINE_COLUMNS = (
    'description', 'quantity', 'unit_price', 'tax_rate', 'discount_rate',
    'tax_amount', 'discount_amount', 'line_total', 'task_id', 'sort_order',
)


def _insert_lines(cursor, tenant_id, invoice_id, lines):
    for idx, line in enumerate(lines):
        row = dict(line)
        row.setdefault('sort_order', idx)
        cursor.execute(f'''
            INSERT INTO invoice_line_items (tenant_id, invoice_id, {", ".join(_LINE_COLUMNS)})
            VALUES (%s, %s, {", ".join(["%s"] * len(_LINE_COLUMNS))})
        ''', [tenant_id, invoice_id] + [row.get(c) for c in _LINE_COLUMNS])


class InvoiceRepository(BaseRepository):

    def get(self, tenant_id, invoice_id):
        return self.query_one('''
            SELECT i.*, c.display_name AS client_name, e.name AS entity_name
            FROM invoices i
            JOIN clients c ON c.id = i.client_id
            LEFT JOIN entities e ON e.id = i.entity_id
            WHERE i.tenant_id = %s AND i.id = %s AND i.is_deleted = FALSE
        ''', (tenant_id, invoice_id))

    def get_lines(self, tenant_id, invoice_id):
        return self.query_all('''
            SELECT * FROM invoice_line_items
            WHERE tenant_id = %s AND invoice_id = %s
            ORDER BY sort_order, id
        ''', (tenant_id, invoice_id))

    def list(self, tenant_id, status=None, client_id=None, date_from=None, date_to=None, search=None):
        conditions, params = ['i.tenant_id = %s', 'i.is_deleted = FALSE'], [tenant_id]
        if status:
            conditions.append('i.status = %s')
            params.append(status)
        if client_id:
            conditions.append('i.client_id = %s')
            params.append(client_id)
        if date_from:
            conditions.append('i.issue_date >= %s')
            params.append(date_from)
        if date_to:
            conditions.append('i.issue_date <= %s')
            params.append(date_to)
        if search:
            conditions.append('(i.invoice_number ILIKE %s OR c.display_name ILIKE %s)')
            params.extend([f'%{search}%', f'%{search}%'])
        return self.query_all(f'''
            SELECT i.*, c.display_name AS client_name
            FROM invoices i
            JOIN clients c ON c.id = i.client_id
            WHERE {' AND '.join(conditions)}
            ORDER BY i.issue_date DESC, i.id DESC
        ''', params)

    def number_exists(self, tenant_id, invoice_number, exclude_id=None):
        sql = 'SELECT 1 FROM invoices WHERE tenant_id = %s AND invoice_number = %s'
        params = [tenant_id, invoice_number]
        if exclude_id:
            sql += ' AND id != %s'
            params.append(exclude_id)
        return self.query_one(sql, params) is not None

    def count_for_year(self, tenant_id, year):
        row = self.query_one('''
            SELECT COUNT(*) AS count FROM invoices
            WHERE tenant_id = %s AND EXTRACT(YEAR FROM issue_date) = %s
        ''', (tenant_id, year))
        return row['count'] if row else 0

    def create(self, tenant_id, header, lines, created_by=None):
        """Insert header + lines and link the task, in one transaction. Returns the id."""
        def _work(cursor):
            cursor.execute(f'''
                INSERT INTO invoices (tenant_id, {", ".join(_HEADER_COLUMNS)}, created_by, updated_by)
                VALUES (%s, {", ".join(["%s"] * len(_HEADER_COLUMNS))}, %s, %s)
                RETURNING id
            ''', [tenant_id] + [header.get(c) for c in _HEADER_COLUMNS] + [created_by, created_by])
            invoice_id = cursor.fetchone()['id']
            _insert_lines(cursor, tenant_id, invoice_id, lines)
            task_ids = {l.get('task_id') for l in lines} | {header.get('task_id')}
            for task_id in sorted(t for t in task_ids if t):
                cursor.execute(
                    'UPDATE tasks SET invoice_id = %s, updated_at = NOW() WHERE tenant_id = %s AND id = %s',
                    (invoice_id, tenant_id, task_id))
            return invoice_id
        return self.execute_many(_work)

    def replace(self, tenant_id, invoice_id, header, lines, updated_by=None):
        """Overwrite header fields and all lines of a draft invoice."""
        def _work(cursor):
            columns = [c for c in _HEADER_COLUMNS if c in header and c != 'status']
            sets = ', '.join(f'{c} = %s' for c in columns)
            cursor.execute(f'''
                UPDATE invoices SET {sets}, updated_by = %s, updated_at = NOW()
                WHERE tenant_id = %s AND id = %s AND is_deleted = FALSE
            ''', [header[c] for c in columns] + [updated_by, tenant_id, invoice_id])
            if cursor.rowcount == 0:
                return False
            if lines is not None:
                cursor.execute(
                    'DELETE FROM invoice_line_items WHERE tenant_id = %s AND invoice_id = %s',
                    (tenant_id, invoice_id))
                _insert_lines(cursor, tenant_id, invoice_id, lines)
            return True
        return self.execute_many(_work)

    def update_status(self, tenant_id, invoice_id, status, updated_by=None):
        return self.execute('''
            UPDATE invoices SET status = %s, updated_by = %s, updated_at = NOW()
            WHERE tenant_id = %s AND id = %s
        ''', (status, updated_by, tenant_id, invoice_id)) > 0

    def soft_delete(self, tenant_id, invoice_id, updated_by=None):
        return self.execute('''
            UPDATE invoices SET is_deleted = TRUE, updated_by = %s, updated_at = NOW()
            WHERE tenant_id = %s AND id = %s AND is_deleted = FALSE
        ''', (updated_by, tenant_id, invoice_id)) > 0

    def find_overdue(self, today):
        """Open invoices past due with money outstanding, across tenants."""
        return self.query_all('''
            SELECT * FROM invoices
            WHERE is_deleted = FALSE
              AND status IN ('sent', 'approved', 'partially_paid')
              AND due_date < %s
              AND amount_due > 0
            ORDER BY tenant_id, id
        ''', (today,))
