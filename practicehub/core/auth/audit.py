"""Helper to record audit events for the current request's user."""
import logging

from flask import request, has_request_context
from flask_login import current_user

from .repositories.event_repository import EventRepository

logger = logging.getLogger('practicehub.core.auth.audit')

_event_repo = EventRepository()


def log_event(event_type, description=None, entity_type=None, entity_id=None, details=None):
    """Write a user_events row for the logged-in user. Failures are logged, not raised."""
    authenticated = has_request_context() and current_user.is_authenticated
    try:
        _event_repo.log_event(
            event_type=event_type,
            event_description=description,
            tenant_id=current_user.tenant_id if authenticated else None,
            user_id=current_user.id if authenticated else None,
            user_email=current_user.email if authenticated else None,
            entity_type=entity_type,
            entity_id=entity_id,
            ip_address=request.remote_addr if has_request_context() else None,
            details=details,
        )
    except Exception as e:
        logger.error(f'Failed to log event {event_type}: {e}')
