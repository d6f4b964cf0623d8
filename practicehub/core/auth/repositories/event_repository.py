"""Event Repository - audit log of user actions."""
import json
from typing import Dict, Any

from core.base_repository import BaseRepository


class EventRepository(BaseRepository):
    """Repository for the user_events audit log."""

    def log_event(
        self,
        event_type: str,
        event_description: str = None,
        tenant_id: int = None,
        user_id: int = None,
        user_email: str = None,
        entity_type: str = None,
        entity_id: int = None,
        ip_address: str = None,
        details: Dict[str, Any] = None
    ) -> int:
        """Record an action (login, client_created, invoice_status_changed, ...).

        Returns:
            The ID of the created event record
        """
        result = self.execute('''
            INSERT INTO user_events
            (tenant_id, user_id, user_email, event_type, event_description,
             entity_type, entity_id, ip_address, details)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        ''', (
            tenant_id, user_id, user_email, event_type, event_description,
            entity_type, entity_id, ip_address,
            json.dumps(details or {}, default=str)
        ), returning=True)
        return result['id']

    def get_events(self, tenant_id: int, limit: int = 100, offset: int = 0,
                   user_id: int = None, event_type: str = None,
                   entity_type: str = None, entity_id: int = None) -> list[dict]:
        conditions = ['ue.tenant_id = %s']
        params = [tenant_id]
        if user_id:
            conditions.append('ue.user_id = %s')
            params.append(user_id)
        if event_type:
            conditions.append('ue.event_type = %s')
            params.append(event_type)
        if entity_type:
            conditions.append('ue.entity_type = %s')
            params.append(entity_type)
        if entity_id:
            conditions.append('ue.entity_id = %s')
            params.append(entity_id)
        params.extend([limit, offset])
        return self.query_all(f'''
            SELECT ue.*, u.display_name AS user_name
            FROM user_events ue
            LEFT JOIN users u ON ue.user_id = u.id
            WHERE {' AND '.join(conditions)}
            ORDER BY ue.created_at DESC
            LIMIT %s OFFSET %s
        ''', params)
