"""Repository for workflow_execution_logs."""

from core.base_repository import BaseRepository, to_json


class ExecutionLogRepository(BaseRepository):

    def create(self, tenant_id, workflow_id, trigger_id, trigger_event_data,
               execution_status, action_logs, error_message=None, execution_time_ms=None):
        """Insert one run record. Returns the row (id, created_at)."""
        return self.execute('''
            INSERT INTO workflow_execution_logs (tenant_id, workflow_id, trigger_id,
                trigger_event_data, execution_status, action_logs, error_message, execution_time_ms)
            VALUES (%s, %s, %s, %s::jsonb, %s, %s::jsonb, %s, %s)
            RETURNING id, created_at
        ''', (
            tenant_id, workflow_id, trigger_id,
            to_json(trigger_event_data, '{}'), execution_status,
            to_json(action_logs, '[]'), error_message, execution_time_ms,
        ), returning=True)

    def list_for_workflow(self, tenant_id, workflow_id, limit=50):
        return self.query_all('''
            SELECT * FROM workflow_execution_logs
            WHERE tenant_id = %s AND workflow_id = %s
            ORDER BY created_at DESC
            LIMIT %s
        ''', (tenant_id, workflow_id, limit))

    def get_stats(self, tenant_id, workflow_id):
        return self.query_one('''
            SELECT COUNT(*) AS total_runs,
                   COUNT(*) FILTER (WHERE execution_status = 'success') AS successful_runs,
                   COUNT(*) FILTER (WHERE execution_status = 'failed') AS failed_runs,
                   AVG(execution_time_ms)::INTEGER AS avg_execution_time_ms
            FROM workflow_execution_logs
            WHERE tenant_id = %s AND workflow_id = %s
        ''', (tenant_id, workflow_id))
