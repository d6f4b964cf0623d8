"""Workflow automation: event triggers, conditions and actions."""
from flask import Blueprint

workflows_bp = Blueprint('workflows', __name__)

from . import routes  # noqa: E402, F401
