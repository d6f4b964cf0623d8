"""Clients, their legal entities and the setup lookups they reference."""
from flask import Blueprint

clients_bp = Blueprint('clients', __name__)

from . import routes  # noqa: E402, F401
