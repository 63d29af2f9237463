"""Compatibility engine: fetch-and-score orchestration for fits and matrices.

Single-item lookups fail fast (CompatNotFoundError); the matrix is best-effort
and omits any system whose fit computation fails or times out.
"""

import asyncio
import logging

from app.core.compat_scoring import score_fit
from app.core.config import get_settings
from app.core.logging import get_logger, log_with_context
from app.core.matching import contains_ci
from app.core.schemas_compat import (
    AppDefinition,
    CompatibilityScore,
    ExternalSystem,
    ExternalSystemSummary,
    MatrixFilters,
    SystemScore,
    TenantIntegration,
)
from app.db.compat_gateway import CompatDataGateway, get_compat_gateway

logger = get_logger(__name__)


class CompatNotFoundError(Exception):
    """Raised when a referenced app or external system does not exist."""

    code = "NOT_FOUND"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AppNotFoundError(CompatNotFoundError):
    code = "APP_NOT_FOUND"

    def __init__(self, app_key: str):
        super().__init__(f"App {app_key} not found")
        self.app_key = app_key


class SystemNotFoundError(CompatNotFoundError):
    code = "SYSTEM_NOT_FOUND"

    def __init__(self, system_slug: str):
        super().__init__(f"System {system_slug} not found")
        self.system_slug = system_slug


async def compute_fit(
    tenant_id: str,
    app_key: str,
    system_slug: str,
    gateway: CompatDataGateway | None = None,
) -> CompatibilityScore:
    """
    Compute the fit score between a platform app and an external system.

    Args:
        tenant_id: Tenant whose workflows and secrets are considered
        app_key: App definition key
        system_slug: External system slug
        gateway: Data access gateway (defaults to Supabase)

    Returns:
        CompatibilityScore

    Raises:
        AppNotFoundError: If the app key is unknown
        SystemNotFoundError: If the system slug is unknown
    """
    gateway = gateway or get_compat_gateway()

    app, system, workflows, active_providers = await asyncio.gather(
        asyncio.to_thread(gateway.get_app_definition, app_key),
        asyncio.to_thread(gateway.get_external_system, system_slug),
        asyncio.to_thread(gateway.list_active_integrations, tenant_id),
        asyncio.to_thread(gateway.list_active_secret_providers, tenant_id),
    )

    if app is None:
        raise AppNotFoundError(app_key)
    if system is None:
        raise SystemNotFoundError(system_slug)

    return score_fit(app, system, workflows, active_providers)


def system_references_provider(system: ExternalSystem, provider: str) -> bool:
    """True if the system's vendor is the provider or it declares an integration naming it."""
    if system.vendor_slug and system.vendor_slug.lower() == provider.lower():
        return True
    return any(contains_ci(i.name, provider) for i in system.integrations)


async def compute_matrix(
    tenant_id: str,
    app_key: str,
    filters: MatrixFilters | None = None,
    gateway: CompatDataGateway | None = None,
    max_concurrency: int | None = None,
    timeout_seconds: float | None = None,
) -> list[SystemScore]:
    """
    Score an app against every known external system.

    Systems are scored concurrently (bounded by max_concurrency), each within
    timeout_seconds. A system that fails or times out is logged and omitted.

    Args:
        tenant_id: Tenant whose workflows and secrets are considered
        app_key: App definition key
        filters: Optional provider / min_score filters
        gateway: Data access gateway (defaults to Supabase)
        max_concurrency: Concurrent fit computations (defaults to settings)
        timeout_seconds: Per-system timeout (defaults to settings)

    Returns:
        SystemScore rows sorted by score descending (ties keep system name order)

    Raises:
        AppNotFoundError: If the app key is unknown
    """
    gateway = gateway or get_compat_gateway()
    filters = filters or MatrixFilters()
    if max_concurrency is None or timeout_seconds is None:
        settings = get_settings()
        max_concurrency = max_concurrency or settings.COMPAT_MATRIX_MAX_CONCURRENCY
        timeout_seconds = timeout_seconds or settings.COMPAT_SYSTEM_TIMEOUT_SECONDS

    app, systems, workflows, active_providers = await asyncio.gather(
        asyncio.to_thread(gateway.get_app_definition, app_key),
        asyncio.to_thread(gateway.list_external_systems),
        asyncio.to_thread(gateway.list_active_integrations, tenant_id),
        asyncio.to_thread(gateway.list_active_secret_providers, tenant_id),
    )

    if app is None:
        raise AppNotFoundError(app_key)

    semaphore = asyncio.Semaphore(max_concurrency)

    def _release(task: asyncio.Future) -> None:
        # A slot is freed only when the worker thread finishes, not when we stop waiting
        semaphore.release()
        if not task.cancelled():
            task.exception()

    async def _run(summary: ExternalSystemSummary) -> SystemScore | None:
        await semaphore.acquire()
        task = asyncio.ensure_future(
            asyncio.to_thread(_score_system, gateway, app, summary, workflows, active_providers, filters)
        )
        task.add_done_callback(_release)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=timeout_seconds)
        except TimeoutError:
            logger.warning(f"Fit computation for {summary.slug} timed out after {timeout_seconds}s")
            return None
        except Exception as e:
            logger.warning(f"Failed to compute fit for {summary.slug}: {e}")
            return None

    results = await asyncio.gather(*[_run(s) for s in systems])
    scores = [r for r in results if r is not None]
    scores.sort(key=lambda s: s.score, reverse=True)

    log_with_context(
        logger,
        logging.INFO,
        "compat.matrix.computed",
        tenant_id=tenant_id,
        app_key=app_key,
        systems=len(systems),
        scored=len(scores),
    )
    return scores


def _score_system(
    gateway: CompatDataGateway,
    app: AppDefinition,
    summary: ExternalSystemSummary,
    workflows: list[TenantIntegration],
    active_providers: set[str],
    filters: MatrixFilters,
) -> SystemScore | None:
    system = gateway.get_external_system(summary.slug)
    if system is None:
        raise SystemNotFoundError(summary.slug)

    if filters.provider and not system_references_provider(system, filters.provider):
        return None

    result = score_fit(app, system, workflows, active_providers)
    if filters.min_score is not None and result.total_score < filters.min_score:
        return None

    return SystemScore(
        system_slug=system.slug,
        system_name=summary.name,
        score=result.total_score,
        badges=result.badges,
        breakdown=result.breakdown,
    )
