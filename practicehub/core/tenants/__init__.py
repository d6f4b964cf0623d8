"""Tenants and per-tenant settings."""
from flask import Blueprint

tenants_bp = Blueprint('tenants', __name__)

from . import routes  # noqa: E402, F401
