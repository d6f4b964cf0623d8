"""In-app notification helpers for any module.

    from core.notifications.notify import notify_user, notify_users

    notify_user(tenant_id, user_id, 'Invoice INV-2025-00012 paid', link='/finance/invoices/12')
    notify_users(tenant_id, [1, 2, 3], 'Recurring tasks need approval', type='approval')

Neither helper raises: a failed insert is logged and swallowed so the
calling operation still succeeds.
"""

import logging
from .repositories.in_app_repo import InAppNotificationRepository

logger = logging.getLogger('practicehub.core.notifications.notify')

_repo = InAppNotificationRepository()


def notify_user(tenant_id, user_id, title, message=None, link=None,
                entity_type=None, entity_id=None, type='info'):
    """Send an in-app notification to a single user. Returns the id or None."""
    try:
        return _repo.create(
            tenant_id=tenant_id, user_id=user_id, title=title, type=type,
            message=message, link=link,
            entity_type=entity_type, entity_id=entity_id,
        )
    except Exception as e:
        logger.error(f'Failed to create notification for user {user_id}: {e}')
        return None


def notify_users(tenant_id, user_ids, title, message=None, link=None,
                 entity_type=None, entity_id=None, type='info'):
    """Send the same in-app notification to multiple users. Returns the ids."""
    if not user_ids:
        return []
    try:
        return _repo.create_bulk(
            tenant_id=tenant_id, user_ids=user_ids, title=title, type=type,
            message=message, link=link,
            entity_type=entity_type, entity_id=entity_id,
        )
    except Exception as e:
        logger.error(f'Failed to create notifications for {len(user_ids)} users: {e}')
        return []
