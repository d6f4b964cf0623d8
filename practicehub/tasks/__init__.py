"""Task tracking, compliance recurrence and auto-generated task approval."""
from flask import Blueprint

tasks_bp = Blueprint('tasks', __name__)

from . import routes  # noqa: E402, F401
