"""API endpoints for the tenant integration graph."""

import json
import time
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.core.api_envelope import ApiError, get_request_id, success_envelope
from app.core.auth_middleware import require_tenant_admin
from app.core.integration_graph import build_graph
from app.core.integration_risks import extract_risk_signals
from app.core.logging import get_logger
from app.core.schemas_auth import TenantContext
from app.core.schemas_integration_graph import GraphBuildOptions, IntegrationGraph

logger = get_logger(__name__)

router = APIRouter(prefix="/integration-graph")


async def _build(tenant_id: str, options: GraphBuildOptions) -> IntegrationGraph:
    try:
        return await build_graph(tenant_id, options)
    except Exception as e:
        logger.error(f"Error building integration graph for tenant {tenant_id}: {e}", exc_info=True)
        raise ApiError("INTERNAL_ERROR", "Failed to build integration graph") from e


@router.get("")
async def get_integration_graph(
    include_recommendations: bool = Query(False, alias="includeRecommendations"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    tenant: TenantContext = Depends(require_tenant_admin),
    request_id: str = Depends(get_request_id),
) -> dict[str, Any]:
    """Build the tenant's integration graph (nodes, edges, stats)."""
    options = GraphBuildOptions(
        include_recommendations=include_recommendations,
        include_inactive=include_inactive,
    )
    graph = await _build(tenant.tenant_id, options)
    return success_envelope(graph.model_dump(mode="json", by_alias=True), request_id)


@router.get("/risks")
async def get_integration_risks(
    tenant: TenantContext = Depends(require_tenant_admin),
    request_id: str = Depends(get_request_id),
) -> dict[str, Any]:
    """List risk signals (missing secrets, unused systems, orphan workflows)."""
    graph = await _build(tenant.tenant_id, GraphBuildOptions())
    signals = extract_risk_signals(graph)
    return success_envelope([s.model_dump(mode="json") for s in signals], request_id)


@router.get("/export")
async def export_integration_graph(
    include_recommendations: bool = Query(False, alias="includeRecommendations"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    tenant: TenantContext = Depends(require_tenant_admin),
) -> Response:
    """Download the integration graph as a JSON file."""
    options = GraphBuildOptions(
        include_recommendations=include_recommendations,
        include_inactive=include_inactive,
    )
    graph = await _build(tenant.tenant_id, options)
    filename = f"integration-graph-{tenant.tenant_id}-{int(time.time() * 1000)}.json"
    return Response(
        content=json.dumps(graph.model_dump(mode="json", by_alias=True), indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
