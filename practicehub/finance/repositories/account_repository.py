"""Chart of accounts."""

from core.base_repository import BaseRepository

ACCOUNT_TYPES = ('asset', 'liability', 'equity', 'revenue', 'expense')


class AccountRepository(BaseRepository):

    def list(self, tenant_id, account_type=None, active_only=True):
        conditions, params = ['tenant_id = %s'], [tenant_id]
        if account_type:
            conditions.append('account_type = %s')
            params.append(account_type)
        if active_only:
            conditions.append('is_active = TRUE')
        return self.query_all(
            f'SELECT * FROM chart_of_accounts WHERE {" AND ".join(conditions)} ORDER BY account_code',
            params)

    def get(self, tenant_id, account_id):
        return self.query_one(
            'SELECT * FROM chart_of_accounts WHERE tenant_id = %s AND id = %s', (tenant_id, account_id))

    def get_by_code(self, tenant_id, account_code):
        return self.query_one(
            'SELECT * FROM chart_of_accounts WHERE tenant_id = %s AND account_code = %s',
            (tenant_id, account_code))

    def get_client_account(self, tenant_id, client_id):
        """The receivable sub-account opened for a client, if any."""
        return self.query_one('''
            SELECT * FROM chart_of_accounts
            WHERE tenant_id = %s AND client_id = %s AND account_type = 'asset' AND is_active = TRUE
            ORDER BY id LIMIT 1
        ''', (tenant_id, client_id))

    def create(self, tenant_id, account_code, account_name, account_type, client_id=None):
        if account_type not in ACCOUNT_TYPES:
            raise ValueError(f"account_type must be one of {', '.join(ACCOUNT_TYPES)}")
        return self.execute('''
            INSERT INTO chart_of_accounts (tenant_id, account_code, account_name, account_type, client_id)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING *
        ''', (tenant_id, account_code, account_name, account_type, client_id), returning=True)
