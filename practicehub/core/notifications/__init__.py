"""In-app notification center."""
from flask import Blueprint

notifications_bp = Blueprint('notifications', __name__)

from . import routes  # noqa: E402, F401
