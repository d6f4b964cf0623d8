"""Journal entries and lines."""

from core.base_repository import BaseRepository


class JournalRepository(BaseRepository):

    def create_entry(self, tenant_id, header, lines, created_by=None):
        """Insert a posted entry with its lines and move account balances, in one transaction.

        Balances follow the account's normal side: assets and expenses grow
        with debits, the other types with credits.
        """
        def _work(cursor):
            cursor.execute('''
                INSERT INTO journal_entries (tenant_id, entry_date, reference, entry_type, description,
                                             is_posted, source_document, source_document_id, created_by)
                VALUES (%s, %s, %s, %s, %s, TRUE, %s, %s, %s)
                RETURNING id
            ''', (
                tenant_id, header['entry_date'], header.get('reference'), header['entry_type'],
                header.get('description'), header.get('source_document'),
                header.get('source_document_id'), created_by,
            ))
            entry_id = cursor.fetchone()['id']
            for order, line in enumerate(lines, start=1):
                cursor.execute('''
                    INSERT INTO journal_entry_lines (tenant_id, journal_entry_id, account_id, description,
                                                     debit_amount, credit_amount, line_order)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                ''', (
                    tenant_id, entry_id, line['account_id'], line.get('description'),
                    line['debit_amount'], line['credit_amount'], order,
                ))
                cursor.execute('''
                    UPDATE chart_of_accounts
                    SET current_balance = current_balance + CASE
                            WHEN account_type IN ('asset', 'expense') THEN %s - %s
                            ELSE %s - %s END,
                        updated_at = NOW()
                    WHERE tenant_id = %s AND id = %s
                ''', (
                    line['debit_amount'], line['credit_amount'],
                    line['credit_amount'], line['debit_amount'],
                    tenant_id, line['account_id'],
                ))
            return entry_id
        return self.execute_many(_work)

    def list(self, tenant_id, entry_type=None, limit=100):
        params = [tenant_id]
        where = 'j.tenant_id = %s'
        if entry_type:
            where += ' AND j.entry_type = %s'
            params.append(entry_type)
        params.append(limit)
        return self.query_all(f'''
            SELECT j.*,
                   COALESCE(SUM(l.debit_amount), 0) AS total_debit,
                   COALESCE(SUM(l.credit_amount), 0) AS total_credit
            FROM journal_entries j
            LEFT JOIN journal_entry_lines l ON l.journal_entry_id = j.id
            WHERE {where}
            GROUP BY j.id
            ORDER BY j.entry_date DESC, j.id DESC
            LIMIT %s
        ''', params)

    def get(self, tenant_id, entry_id):
        entry = self.query_one(
            'SELECT * FROM journal_entries WHERE tenant_id = %s AND id = %s', (tenant_id, entry_id))
        if entry:
            entry['lines'] = self.query_all('''
                SELECT l.*, a.account_code, a.account_name
                FROM journal_entry_lines l
                JOIN chart_of_accounts a ON a.id = l.account_id
                WHERE l.tenant_id = %s AND l.journal_entry_id = %s
                ORDER BY l.line_order
            ''', (tenant_id, entry_id))
        return entry

    def exists_for(self, tenant_id, source_document, source_document_id, entry_type):
        row = self.query_one('''
            SELECT 1 FROM journal_entries
            WHERE tenant_id = %s AND source_document = %s AND source_document_id = %s AND entry_type = %s
            LIMIT 1
        ''', (tenant_id, source_document, source_document_id, entry_type))
        return row is not None

    def trial_balance(self, tenant_id):
        return self.query_all('''
            SELECT a.id AS account_id, a.account_code, a.account_name, a.account_type,
                   COALESCE(SUM(l.debit_amount), 0) AS total_debit,
                   COALESCE(SUM(l.credit_amount), 0) AS total_credit
            FROM chart_of_accounts a
            LEFT JOIN journal_entry_lines l ON l.account_id = a.id
            WHERE a.tenant_id = %s
            GROUP BY a.id
            ORDER BY a.account_code
        ''', (tenant_id,))
