"""Tenant resolution dependencies for FastAPI."""

import hmac
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.api_envelope import ApiError
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.schemas_auth import TenantContext, TenantRole
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)

# System user for API key auth
SYSTEM_USER_ID = "00000000-0000-0000-0000-000000000001"


def _api_key_matches(x_api_key: Optional[str]) -> bool:
    admin_key = get_settings().ADMIN_API_KEY
    if not x_api_key or not admin_key:
        return False
    return hmac.compare_digest(x_api_key, admin_key)


async def get_tenant_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
) -> TenantContext:
    """
    Resolve the caller's tenant.

    Supports two authentication methods:
    1. Admin API key (X-API-Key + X-Tenant-Id headers) - for internal tools
    2. Supabase JWT tokens (Bearer auth) - tenant taken from the caller's tenant role,
       restricted to X-Tenant-Id when that header is sent

    Raises:
        ApiError: UNAUTHORIZED without valid credentials, FORBIDDEN without a tenant role
    """
    # Check for API key auth first (for internal tools)
    if _api_key_matches(x_api_key):
        if not x_tenant_id:
            raise ApiError("MISSING_PARAMETERS", "X-Tenant-Id header is required with an API key")
        logger.debug("Authenticated via admin API key")
        return TenantContext(
            user_id=SYSTEM_USER_ID,
            tenant_id=x_tenant_id,
            role=TenantRole.TENANT_ADMIN.value,
        )

    if not credentials:
        raise ApiError("UNAUTHORIZED", "Not authenticated")

    client = get_supabase()

    try:
        # Validates the JWT signature and expiration
        auth_response = client.auth.get_user(credentials.credentials)
    except Exception as e:
        logger.warning(f"Auth error: {e}")
        raise ApiError("UNAUTHORIZED", "Invalid token") from e

    if not auth_response or not auth_response.user:
        raise ApiError("UNAUTHORIZED", "Invalid token")

    user_id = str(auth_response.user.id)

    query = (
        client.table("user_roles")
        .select("role, scope_id, scope_type")
        .eq("user_id", user_id)
        .eq("scope_type", "tenant")
    )
    if x_tenant_id:
        # Users with roles in several tenants pick one explicitly
        query = query.eq("scope_id", x_tenant_id)
    response = query.limit(1).execute()
    rows = response.data or []
    if not rows or not rows[0].get("scope_id"):
        raise ApiError("FORBIDDEN", "No tenant role for user")

    return TenantContext(user_id=user_id, tenant_id=str(rows[0]["scope_id"]), role=rows[0]["role"])


async def require_tenant_admin(
    tenant: TenantContext = Depends(get_tenant_context),
) -> TenantContext:
    """Require a tenant owner or admin."""
    if not tenant.is_tenant_admin:
        raise ApiError("FORBIDDEN", "Insufficient permissions")
    return tenant
