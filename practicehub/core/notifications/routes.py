"""In-app notification center routes and the SMTP test endpoint."""
from flask import jsonify, request
from flask_login import login_required, current_user

from . import notifications_bp
from .repositories import InAppNotificationRepository
from core.services.email_service import send_email, is_smtp_configured
from core.utils.api_helpers import admin_required, get_json_or_error, parse_int_arg

_in_app_repo = InAppNotificationRepository()


@notifications_bp.route('/api/v1/notifications', methods=['GET'])
@login_required
def api_list_notifications():
    notifications = _in_app_repo.get_for_user(
        current_user.id,
        limit=parse_int_arg('limit', 20, minimum=1, maximum=100),
        offset=parse_int_arg('offset', 0, minimum=0),
        unread_only=request.args.get('unread') == 'true',
    )
    return jsonify({'success': True, 'notifications': notifications})


@notifications_bp.route('/api/v1/notifications/unread-count', methods=['GET'])
@login_required
def api_unread_count():
    return jsonify({'success': True, 'count': _in_app_repo.get_unread_count(current_user.id)})


@notifications_bp.route('/api/v1/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def api_mark_read(notification_id):
    if _in_app_repo.mark_read(notification_id, current_user.id):
        return jsonify({'success': True})
    return jsonify({'success': False, 'error': 'Notification not found'}), 404


@notifications_bp.route('/api/v1/notifications/read-all', methods=['POST'])
@login_required
def api_mark_all_read():
    count = _in_app_repo.mark_all_read(current_user.id)
    return jsonify({'success': True, 'updated': count})


@notifications_bp.route('/api/v1/notifications/test-email', methods=['POST'])
@login_required
@admin_required
def api_test_email():
    """Send a test e-mail to verify SMTP configuration."""
    if not is_smtp_configured():
        return jsonify({'success': False, 'error': 'SMTP not configured'}), 500

    data, error = get_json_or_error()
    if error:
        return error
    to_email = data.get('email')
    if not to_email:
        return jsonify({'success': False, 'error': 'Email address is required'}), 400

    ok, error_message = send_email(
        to_email, 'Test Email - PracticeHub',
        'If you received this email, your SMTP configuration is working correctly.')
    if ok:
        return jsonify({'success': True, 'message': f'Test email sent to {to_email}'})
    return jsonify({'success': False, 'error': error_message}), 500
