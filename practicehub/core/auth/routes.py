"""Auth routes: login/logout, tenant sign-up, users and the audit log."""
from flask import jsonify, request
from flask_login import login_required, login_user, logout_user, current_user

from . import auth_bp
from .audit import log_event
from .models import User
from .repositories import UserRepository, EventRepository
from .services import AuthService
from core.utils.api_helpers import (
    admin_required, get_json_or_error, parse_int_arg, safe_error_response, RateLimiter,
)

_user_repo = UserRepository()
_event_repo = EventRepository()
_auth_service = AuthService()
_auth_limiter = RateLimiter()


# ============== AUTHENTICATION ==============

@auth_bp.route('/api/v1/auth/login', methods=['POST'])
def api_login():
    allowed, retry_after = _auth_limiter.is_allowed(
        f'login:{request.remote_addr}', max_requests=10, window_seconds=300)
    if not allowed:
        return jsonify({
            'success': False,
            'error': f'Too many login attempts. Try again in {retry_after} seconds.',
        }), 429

    data, error = get_json_or_error()
    if error:
        return error

    email = (data.get('email') or '').strip()
    result = _auth_service.authenticate(email, data.get('password') or '')
    if not result.success:
        log_event('login_failed', f'Failed login attempt for {email}')
        return jsonify({'success': False, 'error': result.error}), 401

    user = User(result.user_data)
    login_user(user, remember=bool(data.get('remember')))
    _user_repo.update_last_login(user.id)
    log_event('login', f'User {email} logged in')
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/api/v1/auth/logout', methods=['POST'])
@login_required
def api_logout():
    log_event('logout', f'User {current_user.email} logged out')
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/api/v1/auth/me')
def api_current_user():
    if current_user.is_authenticated:
        return jsonify({'authenticated': True, 'user': current_user.to_dict()})
    return jsonify({'authenticated': False})


@auth_bp.route('/api/v1/auth/register', methods=['POST'])
def api_register():
    """Create a new tenant and its first admin, then log in."""
    allowed, retry_after = _auth_limiter.is_allowed(
        f'register:{request.remote_addr}', max_requests=5, window_seconds=900)
    if not allowed:
        return jsonify({'success': False, 'error': f'Too many requests. Try again in {retry_after} seconds.'}), 429

    data, error = get_json_or_error()
    if error:
        return error

    try:
        result = _auth_service.register_tenant(
            data.get('tenant_name'), data.get('display_name'),
            data.get('email'), data.get('password'))
    except Exception as e:
        return safe_error_response(e)

    if not result.success:
        return jsonify({'success': False, 'error': result.error}), 400

    user = User(result.user_data)
    login_user(user)
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth_bp.route('/api/v1/auth/change-password', methods=['POST'])
@login_required
def api_change_password():
    data, error = get_json_or_error()
    if error:
        return error

    result = _auth_service.change_password(
        current_user.id, current_user.email,
        data.get('current_password', ''), data.get('new_password', ''))
    if not result.success:
        return jsonify({'success': False, 'error': result.error}), 400

    log_event('password_changed', 'User changed their password')
    return jsonify({'success': True, 'message': 'Password changed successfully'})


# ============== USERS ==============

@auth_bp.route('/api/v1/users', methods=['GET'])
@login_required
def api_list_users():
    active_only = request.args.get('active') == 'true'
    return jsonify({'success': True, 'users': _user_repo.list_for_tenant(current_user.tenant_id, active_only)})


@auth_bp.route('/api/v1/users', methods=['POST'])
@login_required
@admin_required
def api_create_user():
    data, error = get_json_or_error()
    if error:
        return error

    email = (data.get('email') or '').strip()
    display_name = (data.get('display_name') or '').strip()
    if not email or not display_name:
        return jsonify({'success': False, 'error': 'email and display_name are required'}), 400

    try:
        user_id = _user_repo.create(
            current_user.tenant_id, email, display_name,
            password=data.get('password'), role_id=data.get('role_id'),
            is_admin=bool(data.get('is_admin', False)))
    except Exception as e:
        return safe_error_response(e)

    log_event('user_created', f'Created user {email}', entity_type='user', entity_id=user_id)
    return jsonify({'success': True, 'id': user_id}), 201


@auth_bp.route('/api/v1/users/<int:user_id>', methods=['PUT'])
@login_required
@admin_required
def api_update_user(user_id):
    data, error = get_json_or_error()
    if error:
        return error

    try:
        updated = _user_repo.update(current_user.tenant_id, user_id, **data)
        if data.get('password'):
            _user_repo.update_password(user_id, data['password'])
            updated = True
    except Exception as e:
        return safe_error_response(e)

    if not updated:
        return jsonify({'success': False, 'error': 'User not found or nothing to update'}), 404
    log_event('user_updated', f'Updated user {user_id}', entity_type='user', entity_id=user_id)
    return jsonify({'success': True})


# ============== AUDIT LOG ==============

@auth_bp.route('/api/v1/events', methods=['GET'])
@login_required
@admin_required
def api_list_events():
    events = _event_repo.get_events(
        current_user.tenant_id,
        limit=parse_int_arg('limit', 100, minimum=1, maximum=500),
        offset=parse_int_arg('offset', 0, minimum=0),
        user_id=request.args.get('user_id', type=int),
        event_type=request.args.get('event_type'),
        entity_type=request.args.get('entity_type'),
        entity_id=request.args.get('entity_id', type=int),
    )
    return jsonify({'success': True, 'events': events})
