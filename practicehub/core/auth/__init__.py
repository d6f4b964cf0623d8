"""PracticeHub authentication module.

Handles login, tenant sign-up, users and the audit log.
"""
from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

from . import routes  # noqa: E402, F401
