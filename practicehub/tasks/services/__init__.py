"""Task services."""
from . import compliance_periods
from .task_service import TaskService
from .recurring_service import RecurringTaskService

__all__ = ['compliance_periods', 'TaskService', 'RecurringTaskService']
