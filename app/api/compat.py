"""API endpoints for app/system compatibility scoring."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from app.core.api_envelope import ApiError, get_request_id, success_envelope
from app.core.auth_middleware import get_tenant_context
from app.core.compat_engine import CompatNotFoundError, compute_fit, compute_matrix
from app.core.compat_scoring import recommend_workflows
from app.core.logging import get_logger, log_with_context
from app.core.schemas_auth import TenantContext
from app.core.schemas_compat import MatrixFilters

logger = get_logger(__name__)

router = APIRouter(prefix="/compat")


@router.get("/score")
async def get_fit_score(
    app_key: str = Query(..., alias="appKey", min_length=1, description="App definition key"),
    system: str = Query(..., min_length=1, description="External system slug"),
    tenant: TenantContext = Depends(get_tenant_context),
    request_id: str = Depends(get_request_id),
) -> dict[str, Any]:
    """
    Compute the fit score between an app and one external system.

    Returns:
        Envelope with the CompatibilityScore plus suggested workflow keys
    """
    try:
        result = await compute_fit(tenant.tenant_id, app_key, system)
    except CompatNotFoundError as e:
        raise ApiError(e.code, e.message) from e
    except Exception as e:
        logger.error(f"Error computing fit for {app_key}/{system}: {e}", exc_info=True)
        raise ApiError("INTERNAL_ERROR", "Failed to compute fit score") from e

    log_with_context(
        logger,
        logging.INFO,
        "compat.score.computed",
        tenant_id=tenant.tenant_id,
        request_id=request_id,
        app_key=app_key,
        system=system,
        score=result.total_score,
    )

    data = result.model_dump(mode="json")
    data["suggested_workflows"] = recommend_workflows(app_key, system, result)
    return success_envelope(data, request_id)


@router.get("/matrix")
async def get_fit_matrix(
    app_key: str = Query(..., alias="appKey", min_length=1, description="App definition key"),
    min_score: int | None = Query(None, alias="minScore", ge=0, le=100, description="Drop rows below this score"),
    provider: str | None = Query(None, description="Only systems referencing this provider"),
    tenant: TenantContext = Depends(get_tenant_context),
    request_id: str = Depends(get_request_id),
) -> dict[str, Any]:
    """
    Score an app against every external system, best first.

    Systems whose computation fails are omitted rather than failing the request.
    """
    try:
        rows = await compute_matrix(
            tenant.tenant_id,
            app_key,
            MatrixFilters(provider=provider, min_score=min_score),
        )
    except CompatNotFoundError as e:
        raise ApiError(e.code, e.message) from e
    except Exception as e:
        logger.error(f"Error computing matrix for {app_key}: {e}", exc_info=True)
        raise ApiError("INTERNAL_ERROR", "Failed to compute compatibility matrix") from e

    return success_envelope([row.model_dump(mode="json") for row in rows], request_id)
