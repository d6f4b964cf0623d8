"""Core services shared by every section: the acting-user context and e-mail."""

from .base import UserContext

__all__ = ['UserContext']
