"""Value types and errors shared by the workflow engine and its actions."""
from dataclasses import dataclass
from typing import Any, Optional


class WorkflowError(Exception):
    """Base error for the workflow engine."""
    status_code = 400


class WorkflowNotFoundError(WorkflowError):
    """Workflow (or its trigger) does not exist for this tenant."""
    status_code = 404


class ActionConfigError(WorkflowError):
    """An action's config is missing a required field or has a bad value."""


@dataclass
class WorkflowEvent:
    """Something that happened in a module, e.g. ('tasks', 'task_created', {...})."""
    module: str
    event: str
    data: dict
    tenant_id: int
    user_id: Optional[int] = None


@dataclass
class ActionContext:
    """What an action handler knows about the run it belongs to."""
    trigger_data: dict
    tenant_id: int
    user_id: Optional[int] = None
    workflow_id: Optional[int] = None


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
    execution_time_ms: int = 0

    def to_log(self, action):
        return {
            'action_id': action.get('id'),
            'action_type': action.get('action_type'),
            'success': self.success,
            'data': self.data,
            'error': self.error,
            'execution_time_ms': self.execution_time_ms,
        }
