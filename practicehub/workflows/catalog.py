"""Static catalogue for the workflow builder: trigger types, events, action fields, templates."""

TRIGGER_TYPES = [
    {'type': 'event', 'label': 'Module event', 'description': 'Runs when something happens in a module'},
    {'type': 'schedule', 'label': 'Schedule', 'description': 'Runs on a cron expression',
     'config_fields': ['cron_expression', 'timezone']},
    {'type': 'webhook', 'label': 'Webhook', 'description': 'Runs when the generated URL receives a POST'},
    {'type': 'manual', 'label': 'Manual', 'description': 'Runs only from the Test button'},
]

TRIGGER_TYPE_NAMES = {t['type'] for t in TRIGGER_TYPES}

MODULE_EVENTS = {
    'clients': {
        'label': 'Clients',
        'events': {
            'client_created': 'Client created',
            'client_status_changed': 'Client status changed',
            'entity_created': 'Entity created',
        },
    },
    'tasks': {
        'label': 'Tasks',
        'events': {
            'task_created': 'Task created',
            'status_changed': 'Task status changed',
            'task_completed': 'Task completed',
            'task_assigned': 'Task assigned',
        },
    },
    'finance': {
        'label': 'Finance',
        'events': {
            'invoice_created': 'Invoice created',
            'invoice_status_changed': 'Invoice status changed',
            'invoice_approved': 'Invoice approved',
            'invoice_overdue': 'Invoice became overdue',
            'payment_received': 'Payment received',
            'invoice_paid': 'Invoice fully paid',
        },
    },
}

CONDITION_OPERATORS = [
    'equals', 'not_equals', 'contains', 'starts_with', 'ends_with',
    'greater_than', 'less_than', 'in', 'not_in', 'is_empty', 'is_not_empty',
    'before_today', 'after_today',
]

ACTION_TYPES = {
    'create_task': {
        'label': 'Create task',
        'fields': {
            'title': 'Task details (required)',
            'description': 'Appended to the details',
            'client_id': 'Client', 'entity_id': 'Entity',
            'assignee_id': 'Assignee (defaults to the user who caused the event)',
            'task_category_id': 'Category',
            'priority': 'low | normal | medium | high | urgent',
            'due_date_offset': "e.g. '+3 days', '2 weeks' (default '+7 days')",
        },
    },
    'update_task': {
        'label': 'Update task',
        'fields': {'task_id': 'Task (required)', 'updates': 'Object of field -> value (required)'},
    },
    'assign_user': {
        'label': 'Assign task',
        'fields': {'task_id': 'Task (required)', 'assignee_id': 'User (required)'},
    },
    'send_notification': {
        'label': 'In-app notification',
        'fields': {
            'recipient_id': 'User', 'recipient_ids': 'List of users',
            'recipient_role': 'Every user with this role',
            'title': 'Title', 'message': 'Message', 'link': 'Link',
        },
    },
    'send_email': {
        'label': 'Send e-mail',
        'fields': {'to': 'Address (required)', 'subject': 'Subject (required)', 'body': 'Body', 'html': 'Body is HTML'},
    },
    'update_client_field': {
        'label': 'Update client field',
        'fields': {'client_id': 'Client (required)', 'field_name': 'Field (required)', 'value': 'New value'},
    },
    'update_entity_field': {
        'label': 'Update entity field',
        'fields': {'entity_id': 'Entity (required)', 'field_name': 'Field (required)', 'value': 'New value'},
    },
    'create_invoice': {
        'label': 'Create invoice',
        'fields': {
            'client_id': 'Client (required)', 'entity_id': 'Entity',
            'line_items': 'List of lines, or use amount + description',
            'amount': 'Single-line amount', 'description': 'Single-line description',
            'tax_rate': 'Tax %', 'currency': 'Currency code', 'task_id': 'Task to link',
        },
    },
    'call_webhook': {
        'label': 'Call webhook',
        'fields': {
            'url': 'URL (required)', 'method': 'HTTP method (default POST)',
            'headers': 'Object', 'payload': 'JSON body (defaults to the trigger data)',
            'timeout': 'Seconds',
        },
    },
    'delay_action': {
        'label': 'Delay',
        'fields': {'duration': 'Amount', 'unit': 'seconds | minutes | hours | days'},
    },
}

WORKFLOW_TEMPLATES = {
    'overdue-compliance-notify': {
        'name': 'Notify on overdue compliance task',
        'description': 'Alert the assignee when an open compliance task past its deadline changes status.',
        'triggers': [{
            'trigger_type': 'event',
            'trigger_module': 'tasks',
            'trigger_event': 'status_changed',
            'trigger_conditions': [
                {'field': 'task.compliance_deadline', 'operator': 'before_today'},
                {'field': 'task.status_name', 'operator': 'not_equals', 'value': 'Completed'},
            ],
        }],
        'actions': [{
            'action_type': 'send_notification',
            'action_config': {
                'recipient_id': '{{trigger.task.assignee_id}}',
                'title': 'Compliance task needs attention',
                'message': '{{trigger.task.task_details}} (deadline {{trigger.task.compliance_deadline}})',
                'entity_type': 'task',
                'entity_id': '{{trigger.task.id}}',
            },
        }],
    },
    'client-onboarding-task': {
        'name': 'Create onboarding task for new client',
        'description': 'Open an onboarding task for every new client.',
        'triggers': [{
            'trigger_type': 'event',
            'trigger_module': 'clients',
            'trigger_event': 'client_created',
        }],
        'actions': [{
            'action_type': 'create_task',
            'action_config': {
                'title': 'Onboard {{trigger.client.display_name}}',
                'description': 'Collect engagement letter, ID documents and prior returns.',
                'client_id': '{{trigger.client.id}}',
                'priority': 'high',
                'due_date_offset': '+5 days',
            },
        }],
    },
    'invoice-on-completion': {
        'name': 'Invoice on task completion',
        'description': 'Raise a draft invoice at the service rate when a billable task is completed.',
        'triggers': [{
            'trigger_type': 'event',
            'trigger_module': 'tasks',
            'trigger_event': 'task_completed',
            'trigger_conditions': [
                {'field': 'task.client_id', 'operator': 'is_not_empty'},
                {'field': 'task.service_rate', 'operator': 'greater_than', 'value': 0},
                {'field': 'task.invoice_id', 'operator': 'is_empty'},
            ],
        }],
        'actions': [{
            'action_type': 'create_invoice',
            'action_config': {
                'client_id': '{{trigger.task.client_id}}',
                'entity_id': '{{trigger.task.entity_id}}',
                'task_id': '{{trigger.task.id}}',
                'amount': '{{trigger.task.service_rate}}',
                'currency': '{{trigger.task.currency}}',
                'description': '{{trigger.task.task_details}}',
            },
        }],
    },
}


def trigger_catalog():
    return {
        'trigger_types': TRIGGER_TYPES,
        'modules': MODULE_EVENTS,
        'operators': CONDITION_OPERATORS,
    }


def action_catalog(registered):
    """ACTION_TYPES limited to handlers that are actually registered."""
    return {key: spec for key, spec in ACTION_TYPES.items() if key in registered}
