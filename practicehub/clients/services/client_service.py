"""Client and entity writes that publish workflow events.

Routes go through ClientService rather than the repositories so that
clients.client_created, clients.client_status_changed and
clients.entity_created are always emitted.
"""

import logging

from clients.repositories import ClientRepository, EntityRepository
from core.services.base import UserContext
from workflows.engine import emit

logger = logging.getLogger('practicehub.clients.service')


class ClientNotFoundError(Exception):
    status_code = 404


class ClientService:

    def __init__(self):
        self._client_repo = ClientRepository()
        self._entity_repo = EntityRepository()

    # ── Clients ──

    def create_client(self, data, user: UserContext):
        display_name = (data.get('display_name') or '').strip()
        if not display_name:
            raise ValueError('display_name is required')

        client = self._client_repo.create(
            user.tenant_id, display_name,
            email=(data.get('email') or '').strip() or None,
            mobile=(data.get('mobile') or '').strip() or None,
            status=data.get('status') or 'Active',
            country_id=data.get('country_id'),
        )
        logger.info(f"Client {client['id']} created for tenant {user.tenant_id}")
        emit('clients', 'client_created', {'client': client}, user.tenant_id, user.user_id)
        return client

    def update_client(self, client_id, data, user: UserContext):
        before = self._client_repo.get(user.tenant_id, client_id)
        if not before:
            raise ClientNotFoundError(f'Client {client_id} not found')

        if 'display_name' in data and not (data['display_name'] or '').strip():
            raise ValueError('display_name cannot be empty')
        self._client_repo.update(user.tenant_id, client_id, **data)
        client = self._client_repo.get(user.tenant_id, client_id)

        if 'status' in data and data['status'] != before.get('status'):
            emit('clients', 'client_status_changed', {
                'client': client,
                'old_status': before.get('status'),
                'new_status': data['status'],
            }, user.tenant_id, user.user_id)
        return client

    def delete_client(self, client_id, user: UserContext):
        if not self._client_repo.delete(user.tenant_id, client_id):
            raise ClientNotFoundError(f'Client {client_id} not found')
        logger.info(f'Client {client_id} deleted by user {user.user_id}')

    # ── Entities ──

    def create_entity(self, client_id, data, user: UserContext):
        client = self._client_repo.get(user.tenant_id, client_id)
        if not client:
            raise ClientNotFoundError(f'Client {client_id} not found')
        if not (data.get('name') or '').strip():
            raise ValueError('Entity name is required')

        entity = self._entity_repo.create(user.tenant_id, client_id, dict(data, name=data['name'].strip()))
        emit('clients', 'entity_created', {'entity': entity, 'client': client},
             user.tenant_id, user.user_id)
        return entity

    def update_entity(self, entity_id, data, user: UserContext):
        if not self._entity_repo.get(user.tenant_id, entity_id):
            raise ClientNotFoundError(f'Entity {entity_id} not found')
        self._entity_repo.update(user.tenant_id, entity_id, **data)
        return self._entity_repo.get(user.tenant_id, entity_id)

    def delete_entity(self, entity_id, user: UserContext):
        if not self._entity_repo.delete(user.tenant_id, entity_id):
            raise ClientNotFoundError(f'Entity {entity_id} not found')
