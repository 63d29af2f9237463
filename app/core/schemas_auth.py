"""Pydantic schemas for tenant resolution."""

from enum import Enum

from pydantic import BaseModel


class TenantRole(str, Enum):
    """Tenant-scoped role from user_roles."""
    TENANT_OWNER = "tenant_owner"
    TENANT_ADMIN = "tenant_admin"
    TENANT_MEMBER = "tenant_member"


# Roles allowed to inspect a tenant's integration topology
TENANT_ADMIN_ROLES = frozenset({TenantRole.TENANT_OWNER.value, TenantRole.TENANT_ADMIN.value})


class TenantContext(BaseModel):
    """The caller and the tenant their request is scoped to."""
    user_id: str
    tenant_id: str
    role: str

    @property
    def is_tenant_admin(self) -> bool:
        return self.role in TENANT_ADMIN_ROLES
