"""Pydantic schemas for the tenant integration graph."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

NodeType = Literal["app", "system", "provider", "workflow", "secret", "recommendation"]
NodeStatus = Literal["ok", "missing", "risk", "recommended", "orphan", "idle"]
EdgeType = Literal["activation", "capability", "workflow", "secret", "recommendation", "provider"]
EdgeStatus = Literal["ok", "missing", "degraded", "recommended", "disabled"]
RiskType = Literal["missing_secret", "unused_system", "orphan_workflow"]
RiskSeverity = Literal["high", "medium", "low"]


# ============================================================================
# Source Records
# ============================================================================


class TenantApplication(BaseModel):
    """An app installed for a tenant."""

    id: str
    app_key: str
    name: str | None = None
    is_active: bool = True


class TenantExternalSystem(BaseModel):
    """A tenant's activated external system instance."""

    id: str
    product_id: str | None = None
    slug: str
    name: str | None = None
    vendor_slug: str | None = None
    vendor_name: str | None = None
    mcp_enabled: bool = False
    configuration_state: str | None = None


class WorkflowRun(BaseModel):
    """A single integration run, newest runs first when listed."""

    workflow_key: str
    provider: str | None = None
    status: str | None = None
    created_at: str | None = None


class IntegrationRecommendation(BaseModel):
    """A persisted, scored system recommendation for one of the tenant's apps."""

    id: str | None = None
    app_key: str
    system_slug: str
    system_name: str | None = None
    score: int
    status: str = "pending"


# ============================================================================
# Graph
# ============================================================================


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: NodeType
    status: NodeStatus
    badges: list[str] = Field(default_factory=list)
    soft: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    from_: str = Field(..., alias="from")
    to: str
    type: EdgeType
    status: EdgeStatus


class GraphStats(BaseModel):
    apps: int = 0
    systems: int = 0
    workflows: int = 0
    secrets: int = 0
    providers: int = 0
    recommendations: int = 0
    missing_secrets: int = 0
    orphan_workflows: int = 0
    unused_systems: int = 0


class IntegrationGraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    stats: GraphStats = Field(default_factory=GraphStats)


class GraphBuildOptions(BaseModel):
    include_recommendations: bool = False
    include_inactive: bool = False


class RiskSignal(BaseModel):
    """A severity-tagged finding derived from a built graph."""

    node_id: str
    type: RiskType
    severity: RiskSeverity
    message: str
    remediation: str
