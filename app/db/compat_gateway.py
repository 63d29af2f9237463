"""Read-only data access for compatibility scoring and the integration graph.

The scoring engine and graph builder depend only on the CompatDataGateway
protocol; SupabaseCompatGateway is the production implementation.
"""

from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol, TypeVar

from supabase import Client

from app.core.logging import get_logger
from app.core.schemas_compat import (
    AppDefinition,
    ExternalSystem,
    ExternalSystemSummary,
    SystemIntegration,
    TenantIntegration,
)
from app.core.schemas_integration_graph import (
    IntegrationRecommendation,
    TenantApplication,
    TenantExternalSystem,
    WorkflowRun,
)
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

T = TypeVar("T")

APP_DEFINITIONS_TABLE = "app_definitions"
EXTERNAL_SYSTEMS_TABLE = "app_products"
TENANT_INTEGRATIONS_TABLE = "tenant_integrations"
TENANT_SECRETS_TABLE = "mcp_tenant_secret"
APPLICATIONS_TABLE = "applications"
TENANT_SYSTEMS_TABLE = "tenant_external_systems"
INTEGRATION_RUNS_TABLE = "integration_run"
RECOMMENDATIONS_TABLE = "integration_recommendation"


class CompatDataGateway(Protocol):
    """Reads needed by the compatibility engine and the integration graph."""

    def get_app_definition(self, app_key: str) -> AppDefinition | None: ...

    def get_external_system(self, slug: str) -> ExternalSystem | None: ...

    def list_external_systems(self) -> list[ExternalSystemSummary]: ...

    def list_active_integrations(self, tenant_id: str) -> list[TenantIntegration]: ...

    def list_active_secret_providers(self, tenant_id: str) -> set[str]: ...

    def list_tenant_applications(
        self, tenant_id: str, include_inactive: bool = False
    ) -> list[TenantApplication]: ...

    def list_tenant_systems(self, tenant_id: str) -> list[TenantExternalSystem]: ...

    def list_recent_workflow_runs(self, tenant_id: str, limit: int) -> list[WorkflowRun]: ...

    def list_top_recommendations(
        self, tenant_id: str, min_score: int, limit: int
    ) -> list[IntegrationRecommendation]: ...


# ============================================================================
# Row mapping
# ============================================================================


def _first(value: Any) -> dict[str, Any]:
    """Embedded relations come back as a dict (to-one) or a list (to-many)."""
    if isinstance(value, list):
        return value[0] if value else {}
    return value or {}


def _parse_rows(rows: list[dict[str, Any]], parse: Callable[[dict[str, Any]], T | None], entity: str) -> list[T]:
    """Parse rows, skipping (and logging) any row that cannot be mapped."""
    parsed: list[T] = []
    for row in rows:
        try:
            item = parse(row)
        except ValueError as e:
            logger.warning(f"Skipping malformed {entity} row {row.get('id')}: {e}")
            continue
        if item is not None:
            parsed.append(item)
    return parsed


def _to_external_system(row: dict[str, Any]) -> ExternalSystem:
    erp = _first(row.get("erp_extensions"))
    vendor = _first(row.get("vendor"))
    return ExternalSystem(
        id=str(row["id"]) if row.get("id") is not None else None,
        slug=row["slug"],
        name=row.get("name") or row["slug"],
        vendor_slug=vendor.get("slug"),
        compliances=row.get("compliances") or [],
        modules=erp.get("modules") or [],
        integrations=[
            SystemIntegration(type=i.get("type") or "", name=i.get("name") or "")
            for i in row.get("app_integrations") or []
        ],
    )


def _to_tenant_application(row: dict[str, Any]) -> TenantApplication | None:
    definition = _first(row.get("app_definition"))
    key = definition.get("key")
    if not key:
        return None
    return TenantApplication(
        id=str(row["id"]),
        app_key=key,
        name=definition.get("name"),
        is_active=bool(row.get("is_active", True)),
    )


def _to_tenant_system(row: dict[str, Any]) -> TenantExternalSystem | None:
    product = _first(row.get("product"))
    slug = product.get("slug")
    if not slug:
        return None
    vendor = _first(product.get("vendor"))
    return TenantExternalSystem(
        id=str(row["id"]),
        product_id=row.get("app_product_id"),
        slug=slug,
        name=product.get("name"),
        vendor_slug=vendor.get("slug"),
        vendor_name=vendor.get("name"),
        mcp_enabled=bool(row.get("mcp_enabled")),
        configuration_state=row.get("configuration_state"),
    )


def _to_workflow_run(row: dict[str, Any]) -> WorkflowRun | None:
    if not row.get("workflow_key"):
        return None
    return WorkflowRun(**row)


def _to_recommendation(row: dict[str, Any]) -> IntegrationRecommendation | None:
    product = _first(row.get("product"))
    slug = product.get("slug")
    if not slug or not row.get("app_key"):
        return None
    return IntegrationRecommendation(
        id=str(row["id"]) if row.get("id") is not None else None,
        app_key=row["app_key"],
        system_slug=slug,
        system_name=product.get("name"),
        score=row["score"],
        status=row.get("status") or "pending",
    )


# ============================================================================
# Supabase implementation
# ============================================================================


class SupabaseCompatGateway:
    """CompatDataGateway backed by Supabase tables."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def get_app_definition(self, app_key: str) -> AppDefinition | None:
        response = (
            self.client.table(APP_DEFINITIONS_TABLE)
            .select("*")
            .eq("key", app_key)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            return None
        row = response.data
        return AppDefinition(
            key=row["key"],
            name=row.get("name"),
            capabilities=row.get("capabilities") or [],
            integration_requirements=row.get("integration_requirements") or {},
        )

    def get_external_system(self, slug: str) -> ExternalSystem | None:
        response = (
            self.client.table(EXTERNAL_SYSTEMS_TABLE)
            .select("*, app_integrations(*), erp_extensions(*), vendor:app_vendors(name, slug)")
            .eq("slug", slug)
            .maybe_single()
            .execute()
        )
        if not response or not response.data:
            return None
        return _to_external_system(response.data)

    def list_external_systems(self) -> list[ExternalSystemSummary]:
        response = self.client.table(EXTERNAL_SYSTEMS_TABLE).select("slug, name").order("name").execute()
        return _parse_rows(
            response.data or [],
            lambda row: ExternalSystemSummary(slug=row["slug"], name=row.get("name") or row["slug"])
            if row.get("slug")
            else None,
            "external system",
        )

    def list_active_integrations(self, tenant_id: str) -> list[TenantIntegration]:
        response = (
            self.client.table(TENANT_INTEGRATIONS_TABLE)
            .select("tenant_id, adapter_id, is_active")
            .eq("tenant_id", tenant_id)
            .eq("is_active", True)
            .execute()
        )
        return _parse_rows(response.data or [], lambda row: TenantIntegration(**row), "tenant integration")

    def list_active_secret_providers(self, tenant_id: str) -> set[str]:
        response = (
            self.client.table(TENANT_SECRETS_TABLE)
            .select("provider")
            .eq("tenant_id", tenant_id)
            .eq("is_active", True)
            .execute()
        )
        return {row["provider"] for row in response.data or [] if row.get("provider")}

    def list_tenant_applications(
        self, tenant_id: str, include_inactive: bool = False
    ) -> list[TenantApplication]:
        query = (
            self.client.table(APPLICATIONS_TABLE)
            .select("id, is_active, app_definition:app_definitions(key, name)")
            .eq("tenant_id", tenant_id)
        )
        if not include_inactive:
            query = query.eq("is_active", True)
        response = query.execute()
        return _parse_rows(response.data or [], _to_tenant_application, "application")

    def list_tenant_systems(self, tenant_id: str) -> list[TenantExternalSystem]:
        response = (
            self.client.table(TENANT_SYSTEMS_TABLE)
            .select(
                "id, app_product_id, mcp_enabled, configuration_state, "
                "product:app_products(id, name, slug, vendor:app_vendors(name, slug))"
            )
            .eq("tenant_id", tenant_id)
            .execute()
        )
        return _parse_rows(response.data or [], _to_tenant_system, "tenant external system")

    def list_recent_workflow_runs(self, tenant_id: str, limit: int) -> list[WorkflowRun]:
        response = (
            self.client.table(INTEGRATION_RUNS_TABLE)
            .select("workflow_key, provider, status, created_at")
            .eq("tenant_id", tenant_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return _parse_rows(response.data or [], _to_workflow_run, "workflow run")

    def list_top_recommendations(
        self, tenant_id: str, min_score: int, limit: int
    ) -> list[IntegrationRecommendation]:
        response = (
            self.client.table(RECOMMENDATIONS_TABLE)
            .select("id, app_key, score, status, product:app_products(id, name, slug)")
            .eq("tenant_id", tenant_id)
            .eq("status", "pending")
            .gte("score", min_score)
            .order("score", desc=True)
            .limit(limit)
            .execute()
        )
        return _parse_rows(response.data or [], _to_recommendation, "recommendation")


@lru_cache(maxsize=1)
def get_compat_gateway() -> CompatDataGateway:
    """Get the shared Supabase-backed gateway (cached singleton)."""
    return SupabaseCompatGateway()
