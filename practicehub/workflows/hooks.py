"""In-process callback registry for domain events.

Every event emitted through workflows.engine.emit() is also fired here as
"<module>.<event>", so code can react without defining a stored workflow.

Usage:
    from workflows.hooks import on

    on('finance.invoice_paid', my_handler)

Events:
    clients.client_created         clients.client_status_changed
    clients.entity_created
    tasks.task_created             tasks.task_assigned
    tasks.status_changed           tasks.task_completed
    finance.invoice_created        finance.invoice_status_changed
    finance.invoice_approved       finance.invoice_overdue
    finance.payment_received       finance.invoice_paid
"""

import logging

logger = logging.getLogger('practicehub.workflows.hooks')

_registry: dict[str, list] = {}


def on(event_type: str, callback):
    """Register a callback for an event type."""
    _registry.setdefault(event_type, []).append(callback)
    logger.debug(f"Registered hook for {event_type}: {getattr(callback, '__name__', callback)}")


def fire(event_type: str, payload: dict):
    """Call every callback registered for event_type. A failing callback does not stop the others."""
    for cb in list(_registry.get(event_type, [])):
        try:
            cb(payload)
        except Exception as e:
            logger.error(f"Hook error for {event_type} in {getattr(cb, '__name__', cb)}: {e}", exc_info=True)


def clear(event_type: str = None):
    """Clear hooks, all of them or a single event type."""
    if event_type:
        _registry.pop(event_type, None)
    else:
        _registry.clear()
