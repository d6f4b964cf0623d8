"""Task statuses. Each tenant orders its statuses by a unique rank; rank 1 is 'New'."""

from core.base_repository import BaseRepository


class TaskStatusRepository(BaseRepository):

    def list(self, tenant_id):
        return self.query_all(
            'SELECT * FROM task_statuses WHERE tenant_id = %s ORDER BY rank', (tenant_id,))

    def get(self, tenant_id, status_id):
        return self.query_one(
            'SELECT * FROM task_statuses WHERE tenant_id = %s AND id = %s', (tenant_id, status_id))

    def get_by_rank(self, tenant_id, rank):
        return self.query_one(
            'SELECT * FROM task_statuses WHERE tenant_id = %s AND rank = %s', (tenant_id, rank))

    def get_by_name(self, tenant_id, name):
        return self.query_one(
            'SELECT * FROM task_statuses WHERE tenant_id = %s AND LOWER(name) = LOWER(%s)',
            (tenant_id, name))

    def create(self, tenant_id, name, rank, description=None):
        return self.execute('''
            INSERT INTO task_statuses (tenant_id, name, rank, description)
            VALUES (%s, %s, %s, %s)
            RETURNING *
        ''', (tenant_id, name, rank, description), returning=True)

    def update(self, tenant_id, status_id, **fields):
        allowed = {'name', 'rank', 'description'}
        sets = [f'{k} = %s' for k in fields if k in allowed]
        if not sets:
            return False
        params = [v for k, v in fields.items() if k in allowed] + [tenant_id, status_id]
        return self.execute(
            f'UPDATE task_statuses SET {", ".join(sets)} WHERE tenant_id = %s AND id = %s',
            params) > 0

    def delete(self, tenant_id, status_id):
        return self.execute(
            'DELETE FROM task_statuses WHERE tenant_id = %s AND id = %s', (tenant_id, status_id)) > 0
