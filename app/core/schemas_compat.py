"""Pydantic schemas for app/system compatibility (fit) scoring."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Source Records (read-only reference data)
# ============================================================================


class AppDefinition(BaseModel):
    """Platform app definition as registered by platform admins."""

    key: str
    name: str | None = None
    capabilities: list[str] = Field(default_factory=list)
    # requirement category -> providers, e.g. {"accounting": ["xero"]}
    integration_requirements: dict[str, list[str]] = Field(default_factory=dict)


class SystemIntegration(BaseModel):
    """An integration reference declared by an external system."""

    type: str = ""
    name: str = ""


class ExternalSystem(BaseModel):
    """External system (ERP/CRM product) evaluated against platform apps."""

    id: str | None = None
    slug: str
    name: str
    vendor_slug: str | None = None
    compliances: list[str] = Field(default_factory=list)
    modules: list[str] = Field(default_factory=list)
    integrations: list[SystemIntegration] = Field(default_factory=list)


class ExternalSystemSummary(BaseModel):
    """Listing row for an external system."""

    slug: str
    name: str


class TenantIntegration(BaseModel):
    """A tenant's configured automation adapter (workflow connector)."""

    tenant_id: str
    adapter_id: str | None = None
    is_active: bool = True


class ActiveSecret(BaseModel):
    """A credential available to a tenant for a provider."""

    tenant_id: str
    provider: str
    is_active: bool = True


# ============================================================================
# Score Breakdown
# ============================================================================


class CapabilityMatch(BaseModel):
    capability: str
    required: bool = True
    available: bool
    read_write: Literal["full", "read-only", "none"]
    score: int


class IntegrationReadiness(BaseModel):
    category: str
    provider: str
    has_workflow: bool
    has_mcp_ref: bool
    has_active_secret: bool
    score: float


class ComplianceMatch(BaseModel):
    requirement: str
    satisfied: bool
    score: int


class EcosystemDetails(BaseModel):
    integration_count: int
    mcp_ref_count: int
    use_case_count: int = 0


class CapabilityMatchScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    weight: float
    details: list[CapabilityMatch]


class IntegrationReadinessScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    weight: float
    details: list[IntegrationReadiness]


class ComplianceScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    weight: float
    details: list[ComplianceMatch]


class EcosystemMaturityScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    weight: float
    details: EcosystemDetails


class ScoreBreakdown(BaseModel):
    capability_match: CapabilityMatchScore
    integration_readiness: IntegrationReadinessScore
    compliance: ComplianceScore
    ecosystem_maturity: EcosystemMaturityScore


class CompatibilityScore(BaseModel):
    """Fit of one platform app against one external system (request-scoped)."""

    model_config = ConfigDict(frozen=True)

    total_score: int = Field(..., ge=0, le=100)
    breakdown: ScoreBreakdown
    explain: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    badges: list[str] = Field(default_factory=list)


# ============================================================================
# Matrix
# ============================================================================


class MatrixFilters(BaseModel):
    """Optional filters for a compatibility matrix."""

    provider: str | None = None
    min_score: int | None = Field(None, ge=0, le=100)


class SystemScore(BaseModel):
    """One row of a compatibility matrix."""

    system_slug: str
    system_name: str
    score: int
    badges: list[str] = Field(default_factory=list)
    breakdown: ScoreBreakdown
