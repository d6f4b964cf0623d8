"""Client repositories."""
from .client_repository import ClientRepository
from .entity_repository import EntityRepository
from .setup_repository import SetupRepository

__all__ = ['ClientRepository', 'EntityRepository', 'SetupRepository']
