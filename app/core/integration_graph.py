"""Integration graph: topology of a tenant's apps, systems, providers, workflows and secrets.

Building is split in three steps:
  1. fetch source records through the data gateway (concurrently)
  2. assemble_graph() - pure construction of nodes and edges
  3. annotate_risks() - pure post-pass returning a new graph with risk statuses

Known limitation: app ownership of systems is not modelled in the source data,
so every activation edge is drawn from the first app in the tenant's app list.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import Iterable

from app.core.config import get_settings
from app.core.logging import get_logger, log_with_context
from app.core.matching import workflow_targets_system
from app.core.schemas_integration_graph import (
    GraphBuildOptions,
    GraphEdge,
    GraphNode,
    GraphStats,
    IntegrationGraph,
    IntegrationRecommendation,
    TenantApplication,
    TenantExternalSystem,
    WorkflowRun,
)
from app.db.compat_gateway import CompatDataGateway, get_compat_gateway

logger = get_logger(__name__)


def app_node_id(app_key: str) -> str:
    return f"APP:{app_key}"


def system_node_id(slug: str) -> str:
    return f"SYSTEM:{slug}"


def provider_node_id(slug: str) -> str:
    return f"PROVIDER:{slug}"


def workflow_node_id(workflow_key: str) -> str:
    return f"WORKFLOW:{workflow_key}"


def secret_node_id(provider: str) -> str:
    return f"SECRET:{provider}"


def recommendation_node_id(slug: str) -> str:
    return f"RECOMMENDATION:{slug}"


class _GraphAccumulator:
    """Collects nodes and edges while a graph is being assembled."""

    def __init__(self) -> None:
        self.nodes: dict[str, GraphNode] = {}
        self.edges: dict[str, GraphEdge] = {}

    def add_node(self, node: GraphNode) -> bool:
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        return True

    def add_edge(self, from_id: str, to_id: str, edge_type: str, status: str) -> None:
        edge_id = f"{from_id}->{to_id}"
        if edge_id in self.edges:
            return
        self.edges[edge_id] = GraphEdge(id=edge_id, from_=from_id, to=to_id, type=edge_type, status=status)


def assemble_graph(
    apps: Iterable[TenantApplication],
    systems: Iterable[TenantExternalSystem],
    workflow_runs: Iterable[WorkflowRun],
    active_providers: set[str],
    recommendations: Iterable[IntegrationRecommendation] = (),
) -> IntegrationGraph:
    """
    Assemble the raw integration graph (no risk annotation).

    Args:
        apps: Tenant applications, in listing order
        systems: Tenant's activated external system instances
        workflow_runs: Integration runs, newest first
        active_providers: Providers with an active secret for the tenant
        recommendations: Pending recommendations to render as soft nodes

    Returns:
        IntegrationGraph with stats computed over the assembled nodes
    """
    graph = _GraphAccumulator()

    # Apps
    first_app_id: str | None = None
    for app in apps:
        node_id = app_node_id(app.app_key)
        graph.add_node(
            GraphNode(
                id=node_id,
                label=app.name or app.app_key,
                type="app",
                status="ok" if app.is_active else "idle",
                metadata={"id": app.id},
            )
        )
        if first_app_id is None:
            first_app_id = node_id

    # Systems, providers and activation edges
    system_slugs: list[str] = []
    providers: list[str] = []
    for system in systems:
        node_id = system_node_id(system.slug)
        is_active = system.configuration_state == "active"
        added = graph.add_node(
            GraphNode(
                id=node_id,
                label=system.name or system.slug,
                type="system",
                status="ok" if is_active else "idle",
                badges=["MCP"] if system.mcp_enabled else [],
                metadata={
                    "id": system.id,
                    "product_id": system.product_id,
                    "state": system.configuration_state,
                },
            )
        )
        if not added:
            logger.debug(f"Duplicate system instance for {system.slug}, keeping the first")
            continue
        system_slugs.append(system.slug)

        if system.vendor_slug:
            provider_id = provider_node_id(system.vendor_slug)
            if graph.add_node(
                GraphNode(
                    id=provider_id,
                    label=system.vendor_name or system.vendor_slug,
                    type="provider",
                    status="ok",
                )
            ):
                providers.append(system.vendor_slug)
            graph.add_edge(node_id, provider_id, "provider", "ok")

        if first_app_id is not None:
            graph.add_edge(first_app_id, node_id, "activation", "ok" if is_active else "degraded")

    # Workflows, deduplicated by key (the first run seen is the most recent)
    for run in workflow_runs:
        node_id = workflow_node_id(run.workflow_key)
        if node_id in graph.nodes:
            continue

        targets = [slug for slug in system_slugs if workflow_targets_system(run.workflow_key, slug)]
        badges = [run.provider] if run.provider else []
        if targets:
            status = "ok" if run.status == "success" else "risk"
        else:
            status = "orphan"
            badges.append("orphan")

        graph.add_node(
            GraphNode(
                id=node_id,
                label=run.workflow_key,
                type="workflow",
                status=status,
                badges=badges,
                metadata={"provider": run.provider, "last_status": run.status},
            )
        )
        for slug in targets:
            graph.add_edge(node_id, system_node_id(slug), "workflow", "ok")

    # Secrets, one per provider, presence from the tenant's active secrets
    for provider in providers:
        node_id = secret_node_id(provider)
        has_secret = provider in active_providers
        graph.add_node(
            GraphNode(
                id=node_id,
                label=f"{provider} secret",
                type="secret",
                status="ok" if has_secret else "missing",
                badges=[] if has_secret else ["missing"],
                metadata={"provider": provider},
            )
        )
        graph.add_edge(node_id, provider_node_id(provider), "secret", "ok" if has_secret else "missing")

    # Recommendations (soft nodes)
    active_slugs = set(system_slugs)
    for rec in recommendations:
        if rec.system_slug in active_slugs:
            continue
        from_id = app_node_id(rec.app_key)
        if from_id not in graph.nodes:
            logger.debug(f"Skipping recommendation {rec.system_slug}: app {rec.app_key} not in graph")
            continue

        node_id = recommendation_node_id(rec.system_slug)
        graph.add_node(
            GraphNode(
                id=node_id,
                label=rec.system_name or rec.system_slug,
                type="recommendation",
                status="recommended",
                soft=True,
                badges=[str(rec.score)],
                metadata={"score": rec.score, "app_key": rec.app_key},
            )
        )
        graph.add_edge(from_id, node_id, "recommendation", "recommended")

    nodes = list(graph.nodes.values())
    return IntegrationGraph(nodes=nodes, edges=list(graph.edges.values()), stats=compute_graph_stats(nodes))


def annotate_risks(graph: IntegrationGraph) -> IntegrationGraph:
    """
    Return a new graph with heuristic risk statuses applied.

    - A system with no incoming workflow edge that is still "ok" becomes "idle" (badge "unused").
    - A non-orphan workflow whose provider's secret is missing becomes "risk" (badge "no-secret").

    The input graph is left untouched.
    """
    workflow_targets = {e.to for e in graph.edges if e.type == "workflow"}
    missing_secret_providers = {
        n.metadata.get("provider") or n.id.removeprefix("SECRET:")
        for n in graph.nodes
        if n.type == "secret" and n.status == "missing"
    }

    nodes: list[GraphNode] = []
    for node in graph.nodes:
        if node.type == "system" and node.status == "ok" and node.id not in workflow_targets:
            node = node.model_copy(update={"status": "idle", "badges": [*node.badges, "unused"]})
        elif (
            node.type == "workflow"
            and node.status != "orphan"
            and any(badge in missing_secret_providers for badge in node.badges)
        ):
            node = node.model_copy(update={"status": "risk", "badges": [*node.badges, "no-secret"]})
        nodes.append(node)

    return IntegrationGraph(nodes=nodes, edges=list(graph.edges), stats=compute_graph_stats(nodes))


def compute_graph_stats(nodes: Iterable[GraphNode]) -> GraphStats:
    """Count nodes per type plus the derived risk counters."""
    nodes = list(nodes)
    by_type = Counter(n.type for n in nodes)
    return GraphStats(
        apps=by_type["app"],
        systems=by_type["system"],
        workflows=by_type["workflow"],
        secrets=by_type["secret"],
        providers=by_type["provider"],
        recommendations=by_type["recommendation"],
        missing_secrets=sum(1 for n in nodes if n.type == "secret" and n.status == "missing"),
        orphan_workflows=sum(1 for n in nodes if n.type == "workflow" and n.status == "orphan"),
        unused_systems=sum(1 for n in nodes if n.type == "system" and n.status == "idle"),
    )


async def build_graph(
    tenant_id: str,
    options: GraphBuildOptions | None = None,
    gateway: CompatDataGateway | None = None,
) -> IntegrationGraph:
    """
    Build the risk-annotated integration graph for a tenant.

    Args:
        tenant_id: Tenant UUID (as string)
        options: include_recommendations / include_inactive
        gateway: Data access gateway (defaults to Supabase)

    Returns:
        IntegrationGraph with nodes, edges and stats
    """
    options = options or GraphBuildOptions()
    gateway = gateway or get_compat_gateway()
    settings = get_settings()

    def _q_recommendations() -> list[IntegrationRecommendation]:
        if not options.include_recommendations:
            return []
        try:
            return gateway.list_top_recommendations(
                tenant_id,
                settings.GRAPH_RECOMMENDATION_MIN_SCORE,
                settings.GRAPH_RECOMMENDATION_LIMIT,
            )
        except Exception as e:
            logger.warning(f"Failed to load recommendations for tenant {tenant_id}: {e}")
            return []

    apps, systems, runs, active_providers, recommendations = await asyncio.gather(
        asyncio.to_thread(gateway.list_tenant_applications, tenant_id, options.include_inactive),
        asyncio.to_thread(gateway.list_tenant_systems, tenant_id),
        asyncio.to_thread(gateway.list_recent_workflow_runs, tenant_id, settings.GRAPH_WORKFLOW_RUN_LIMIT),
        asyncio.to_thread(gateway.list_active_secret_providers, tenant_id),
        asyncio.to_thread(_q_recommendations),
    )

    graph = annotate_risks(assemble_graph(apps, systems, runs, active_providers, recommendations))

    log_with_context(
        logger,
        logging.INFO,
        "integration_graph.generated",
        tenant_id=tenant_id,
        nodes=len(graph.nodes),
        edges=len(graph.edges),
        missing_secrets=graph.stats.missing_secrets,
        orphan_workflows=graph.stats.orphan_workflows,
        unused_systems=graph.stats.unused_systems,
    )
    return graph
