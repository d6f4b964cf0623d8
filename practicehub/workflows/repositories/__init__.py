"""Workflow repositories."""
from .workflow_repository import WorkflowRepository
from .execution_log_repository import ExecutionLogRepository

__all__ = ['WorkflowRepository', 'ExecutionLogRepository']
