"""Client services."""
from .client_service import ClientService, ClientNotFoundError

__all__ = ['ClientService', 'ClientNotFoundError']
