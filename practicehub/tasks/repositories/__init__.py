"""Task repositories."""
from .task_repository import TaskRepository
from .status_repository import TaskStatusRepository

__all__ = ['TaskRepository', 'TaskStatusRepository']
