"""Compatibility (fit) scoring between a platform app and an external system.

Pure functions only: every input is an already-fetched record, so the same
inputs always produce the same CompatibilityScore.

Score components:
  - Capability match: 40%
  - Integration readiness: 30%
  - Compliance: 20%
  - Ecosystem maturity: 10%
"""

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from app.core.matching import capability_matches, references_provider
from app.core.schemas_compat import (
    AppDefinition,
    CapabilityMatch,
    CapabilityMatchScore,
    CompatibilityScore,
    ComplianceMatch,
    ComplianceScore,
    EcosystemDetails,
    EcosystemMaturityScore,
    ExternalSystem,
    IntegrationReadiness,
    IntegrationReadinessScore,
    ScoreBreakdown,
    TenantIntegration,
)

# Weight distribution (must sum to 1.0)
WEIGHT_CAPABILITY = 0.4
WEIGHT_INTEGRATION = 0.3
WEIGHT_COMPLIANCE = 0.2
WEIGHT_ECOSYSTEM = 0.1

# Integration readiness signal weights per (category, provider) pair
SIGNAL_WORKFLOW = 1.0
SIGNAL_MCP_REF = 0.5
SIGNAL_ACTIVE_SECRET = 0.1
MAX_PAIR_SCORE = SIGNAL_WORKFLOW + SIGNAL_MCP_REF + SIGNAL_ACTIVE_SECRET

# MCP reference suggestions are only emitted when there are at most this many gaps
MAX_MCP_SUGGESTIONS = 2

LIMITED_CAPABILITY_THRESHOLD = 50


@dataclass(frozen=True)
class ComplianceRequirement:
    """A named compliance requirement and how a system satisfies it."""

    requirement: str
    check: Callable[[ExternalSystem], bool]


def _declares_compliance(name: str) -> Callable[[ExternalSystem], bool]:
    return lambda system: name in system.compliances


COMPLIANCE_CHECKLIST: tuple[ComplianceRequirement, ...] = (
    ComplianceRequirement("GDPR", _declares_compliance("GDPR")),
    ComplianceRequirement("SAF-T NO", _declares_compliance("SAF-T NO")),
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (62.5 -> 63)."""
    return int(math.floor(value + 0.5))


# =========================
# Calculators
# =========================


def compute_capability_match(app: AppDefinition, system: ExternalSystem) -> CapabilityMatchScore:
    """
    Score how many of the app's required capabilities the system's modules cover.

    An app with no declared capabilities scores 0 (no data, no credit).
    """
    details: list[CapabilityMatch] = []
    for capability in app.capabilities:
        available = any(capability_matches(module, capability) for module in system.modules)
        details.append(
            CapabilityMatch(
                capability=capability,
                available=available,
                read_write="full" if available else "none",
                score=1 if available else 0,
            )
        )

    score = 0
    if details:
        score = round_half_up(sum(d.score for d in details) / len(details) * 100)

    return CapabilityMatchScore(score=score, weight=WEIGHT_CAPABILITY, details=details)


def compute_integration_readiness(
    app: AppDefinition,
    system: ExternalSystem,
    workflows: Iterable[TenantIntegration],
    active_providers: set[str],
) -> IntegrationReadinessScore:
    """
    Score readiness of every (category, provider) integration the app requires.

    Per pair: active workflow +1.0, MCP reference on the system +0.5,
    active secret +0.1 (max 1.6).
    """
    adapter_ids = [w.adapter_id for w in workflows if w.is_active]
    mcp_names = [i.name for i in system.integrations if i.type == "mcp"]

    details: list[IntegrationReadiness] = []
    for category, providers in app.integration_requirements.items():
        for provider in providers:
            has_workflow = any(references_provider(a, provider) for a in adapter_ids)
            has_mcp_ref = any(references_provider(n, provider) for n in mcp_names)
            has_active_secret = provider in active_providers

            score = 0.0
            if has_workflow:
                score += SIGNAL_WORKFLOW
            if has_mcp_ref:
                score += SIGNAL_MCP_REF
            if has_active_secret:
                score += SIGNAL_ACTIVE_SECRET

            details.append(
                IntegrationReadiness(
                    category=category,
                    provider=provider,
                    has_workflow=has_workflow,
                    has_mcp_ref=has_mcp_ref,
                    has_active_secret=has_active_secret,
                    score=score,
                )
            )

    score = 0
    if details:
        max_score = len(details) * MAX_PAIR_SCORE
        score = round_half_up(sum(d.score for d in details) / max_score * 100)

    return IntegrationReadinessScore(score=score, weight=WEIGHT_INTEGRATION, details=details)


def compute_compliance_match(
    system: ExternalSystem,
    checklist: Iterable[ComplianceRequirement] = COMPLIANCE_CHECKLIST,
) -> ComplianceScore:
    """Score the system against a compliance checklist (GDPR and SAF-T NO by default)."""
    details = []
    for item in checklist:
        satisfied = bool(item.check(system))
        details.append(
            ComplianceMatch(requirement=item.requirement, satisfied=satisfied, score=int(satisfied))
        )

    score = 0
    if details:
        score = round_half_up(sum(d.score for d in details) / len(details) * 100)

    return ComplianceScore(score=score, weight=WEIGHT_COMPLIANCE, details=details)


def compute_ecosystem_maturity(system: ExternalSystem) -> EcosystemMaturityScore:
    """Score the breadth of the system's declared integrations (stepped, not linear)."""
    integration_count = len(system.integrations)
    mcp_ref_count = sum(1 for i in system.integrations if i.type == "mcp")

    score = 0.0
    if integration_count >= 3:
        score += 0.5
    elif integration_count >= 1:
        score += 0.25

    if mcp_ref_count >= 2:
        score += 0.5
    elif mcp_ref_count >= 1:
        score += 0.25

    return EcosystemMaturityScore(
        score=round_half_up(score * 100),
        weight=WEIGHT_ECOSYSTEM,
        details=EcosystemDetails(integration_count=integration_count, mcp_ref_count=mcp_ref_count),
    )


# =========================
# Aggregation
# =========================


def score_fit(
    app: AppDefinition,
    system: ExternalSystem,
    workflows: Iterable[TenantIntegration],
    active_providers: set[str],
) -> CompatibilityScore:
    """
    Combine the four calculators into a CompatibilityScore.

    Args:
        app: App definition being evaluated
        system: External system being evaluated against
        workflows: Tenant's active integrations (workflow adapters)
        active_providers: Providers with an active secret for the tenant

    Returns:
        CompatibilityScore with breakdown, explanations, recommendations and badges
    """
    breakdown = ScoreBreakdown(
        capability_match=compute_capability_match(app, system),
        integration_readiness=compute_integration_readiness(app, system, workflows, active_providers),
        compliance=compute_compliance_match(system),
        ecosystem_maturity=compute_ecosystem_maturity(system),
    )

    total_score = round_half_up(
        breakdown.capability_match.score * WEIGHT_CAPABILITY
        + breakdown.integration_readiness.score * WEIGHT_INTEGRATION
        + breakdown.compliance.score * WEIGHT_COMPLIANCE
        + breakdown.ecosystem_maturity.score * WEIGHT_ECOSYSTEM
    )

    return CompatibilityScore(
        total_score=total_score,
        breakdown=breakdown,
        explain=_build_explanations(breakdown),
        recommendations=_build_recommendations(breakdown),
        badges=_build_badges(breakdown),
    )


def _build_explanations(breakdown: ScoreBreakdown) -> list[str]:
    explain: list[str] = []

    cap_missing = [d.capability for d in breakdown.capability_match.details if not d.available]
    if cap_missing:
        explain.append(f"Missing capabilities: {', '.join(cap_missing)}")
    else:
        explain.append("All required capabilities are supported")

    workflow_missing = [
        d.provider for d in breakdown.integration_readiness.details if not d.has_workflow
    ]
    if workflow_missing:
        explain.append(f"Missing workflows for: {', '.join(workflow_missing)}")

    comp_missing = [d.requirement for d in breakdown.compliance.details if not d.satisfied]
    if comp_missing:
        explain.append(f"Missing compliance: {', '.join(comp_missing)}")

    return explain


def _build_recommendations(breakdown: ScoreBreakdown) -> list[str]:
    details = breakdown.integration_readiness.details
    recommendations: list[str] = []

    for item in details:
        if not item.has_workflow:
            recommendations.append(f"Create workflow mapping for {item.provider}")

    for item in details:
        if item.has_workflow and not item.has_active_secret:
            recommendations.append(f"Activate secret for {item.provider}")

    needs_mcp = [item for item in details if not item.has_mcp_ref]
    if len(needs_mcp) <= MAX_MCP_SUGGESTIONS:
        for item in needs_mcp:
            recommendations.append(f"Add MCP reference for {item.provider}")

    return recommendations


def _build_badges(breakdown: ScoreBreakdown) -> list[str]:
    details = breakdown.integration_readiness.details
    badges: list[str] = []

    if breakdown.capability_match.score < LIMITED_CAPABILITY_THRESHOLD:
        badges.append("Limited capabilities")
    if any(not d.has_workflow for d in details):
        badges.append("Missing workflows")
    if any(not d.has_active_secret for d in details):
        badges.append("No active secrets")
    if breakdown.compliance.score < 100:
        badges.append("Incomplete compliance")

    return badges


def recommend_workflows(app_key: str, system_slug: str, score: CompatibilityScore) -> list[str]:
    """Suggest workflow keys for every required provider that has no workflow yet."""
    return [
        f"{d.provider}_{system_slug}_{app_key}_sync"
        for d in score.breakdown.integration_readiness.details
        if not d.has_workflow
    ]
