"""
Task Exceptions

Raised by the task services; routes return them with `status_code`.
"""


class TaskError(Exception):
    """Base exception for the tasks module."""
    status_code = 400


class TaskNotFoundError(TaskError):
    """Raised when a task does not exist in the caller's tenant."""
    status_code = 404

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class TaskStatusNotFoundError(TaskError):
    """Raised when a status id (or the rank-1 'New' status) is missing."""
    status_code = 404
