"""Tenant repositories."""
from .tenant_repository import TenantRepository
from .settings_repository import TenantSettingsRepository

__all__ = ['TenantRepository', 'TenantSettingsRepository']
