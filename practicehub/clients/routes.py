"""Client, entity and setup lookup routes."""
from flask import jsonify, request
from flask_login import current_user

from . import clients_bp
from .repositories import ClientRepository, EntityRepository, SetupRepository
from .repositories.setup_repository import LOOKUP_TABLES
from .services import ClientService
from core.auth.audit import log_event
from core.roles.decorators import require_permission
from core.services.base import UserContext
from core.utils.api_helpers import error_response, get_json_or_error, handle_api_errors

_client_repo = ClientRepository()
_entity_repo = EntityRepository()
_setup_repo = SetupRepository()
_client_service = ClientService()


def _ctx():
    return UserContext.from_user(current_user, request.remote_addr)


# ════════════════════════════════════════════
# Clients
# ════════════════════════════════════════════

@clients_bp.route('/api/v1/clients', methods=['GET'])
@require_permission('clients', 'read')
def api_list_clients():
    clients = _client_repo.list(
        current_user.tenant_id,
        status=request.args.get('status'),
        search=request.args.get('search'),
        country_id=request.args.get('country_id', type=int),
        sort_by=request.args.get('sort_by'),
    )
    return jsonify({'success': True, 'clients': clients})


@clients_bp.route('/api/v1/clients/<int:client_id>', methods=['GET'])
@require_permission('clients', 'read')
def api_get_client(client_id):
    client = _client_repo.get(current_user.tenant_id, client_id)
    if not client:
        return error_response('Client not found', 404)
    client['entities'] = _entity_repo.list(current_user.tenant_id, client_id)
    return jsonify({'success': True, 'client': client})


@clients_bp.route('/api/v1/clients', methods=['POST'])
@require_permission('clients', 'create')
@handle_api_errors
def api_create_client():
    data, error = get_json_or_error()
    if error:
        return error
    client = _client_service.create_client(data, _ctx())
    log_event('client_created', f"Created client {client['display_name']}", 'client', client['id'])
    return jsonify({'success': True, 'client': client}), 201


@clients_bp.route('/api/v1/clients/<int:client_id>', methods=['PUT'])
@require_permission('clients', 'update')
@handle_api_errors
def api_update_client(client_id):
    data, error = get_json_or_error()
    if error:
        return error
    client = _client_service.update_client(client_id, data, _ctx())
    log_event('client_updated', f'Updated client {client_id}', 'client', client_id, {'fields': sorted(data)})
    return jsonify({'success': True, 'client': client})


@clients_bp.route('/api/v1/clients/<int:client_id>', methods=['DELETE'])
@require_permission('clients', 'delete')
@handle_api_errors
def api_delete_client(client_id):
    _client_service.delete_client(client_id, _ctx())
    log_event('client_deleted', f'Deleted client {client_id}', 'client', client_id)
    return jsonify({'success': True})


# ════════════════════════════════════════════
# Entities
# ════════════════════════════════════════════

@clients_bp.route('/api/v1/entities', methods=['GET'])
@require_permission('clients', 'read')
def api_list_entities():
    entities = _entity_repo.list(current_user.tenant_id, request.args.get('client_id', type=int))
    return jsonify({'success': True, 'entities': entities})


@clients_bp.route('/api/v1/entities/<int:entity_id>', methods=['GET'])
@require_permission('clients', 'read')
def api_get_entity(entity_id):
    entity = _entity_repo.get(current_user.tenant_id, entity_id)
    if not entity:
        return error_response('Entity not found', 404)
    return jsonify({'success': True, 'entity': entity})


@clients_bp.route('/api/v1/clients/<int:client_id>/entities', methods=['POST'])
@require_permission('clients', 'create')
@handle_api_errors
def api_create_entity(client_id):
    data, error = get_json_or_error()
    if error:
        return error
    entity = _client_service.create_entity(client_id, data, _ctx())
    log_event('entity_created', f"Created entity {entity['name']}", 'entity', entity['id'])
    return jsonify({'success': True, 'entity': entity}), 201


@clients_bp.route('/api/v1/entities/<int:entity_id>', methods=['PUT'])
@require_permission('clients', 'update')
@handle_api_errors
def api_update_entity(entity_id):
    data, error = get_json_or_error()
    if error:
        return error
    entity = _client_service.update_entity(entity_id, data, _ctx())
    return jsonify({'success': True, 'entity': entity})


@clients_bp.route('/api/v1/entities/<int:entity_id>', methods=['DELETE'])
@require_permission('clients', 'delete')
@handle_api_errors
def api_delete_entity(entity_id):
    _client_service.delete_entity(entity_id, _ctx())
    log_event('entity_deleted', f'Deleted entity {entity_id}', 'entity', entity_id)
    return jsonify({'success': True})


# ════════════════════════════════════════════
# Setup lookups
# ════════════════════════════════════════════

def _lookup_name(name):
    table = name.replace('-', '_')
    return table if table in LOOKUP_TABLES else None


@clients_bp.route('/api/v1/setup/<name>', methods=['GET'])
@require_permission('setup', 'read')
def api_list_lookup(name):
    table = _lookup_name(name)
    if not table:
        return error_response('Unknown lookup', 404)
    return jsonify({'success': True, 'items': _setup_repo.list(current_user.tenant_id, table)})


@clients_bp.route('/api/v1/setup/<name>', methods=['POST'])
@require_permission('setup', 'create')
@handle_api_errors
def api_create_lookup(name):
    table = _lookup_name(name)
    if not table:
        return error_response('Unknown lookup', 404)
    data, error = get_json_or_error()
    if error:
        return error
    fields = {k: v for k, v in data.items() if k != 'name'}
    item = _setup_repo.create(current_user.tenant_id, table, data.get('name'), **fields)
    return jsonify({'success': True, 'item': item}), 201


@clients_bp.route('/api/v1/setup/<name>/<int:row_id>', methods=['DELETE'])
@require_permission('setup', 'delete')
def api_delete_lookup(name, row_id):
    table = _lookup_name(name)
    if not table:
        return error_response('Unknown lookup', 404)
    if not _setup_repo.delete(current_user.tenant_id, table, row_id):
        return error_response('Not found', 404)
    return jsonify({'success': True})
