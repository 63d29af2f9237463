"""Risk signals derived from a built integration graph (reporting only, no mutation)."""

from app.core.schemas_integration_graph import IntegrationGraph, RiskSignal


def extract_risk_signals(graph: IntegrationGraph) -> list[RiskSignal]:
    """
    Emit one risk signal per missing secret, idle system and orphan workflow.

    Signals follow node order in the graph.
    """
    signals: list[RiskSignal] = []

    for node in graph.nodes:
        if node.type == "secret" and node.status == "missing":
            signals.append(RiskSignal(
                node_id=node.id,
                type="missing_secret",
                severity="high",
                message=f"Missing secret for {node.label}",
                remediation="Activate integration secret in MCP settings",
            ))
        elif node.type == "system" and node.status == "idle":
            signals.append(RiskSignal(
                node_id=node.id,
                type="unused_system",
                severity="medium",
                message=f"{node.label} is not connected to any workflows",
                remediation="Add workflow mapping or deactivate system",
            ))
        elif node.type == "workflow" and node.status == "orphan":
            signals.append(RiskSignal(
                node_id=node.id,
                type="orphan_workflow",
                severity="medium",
                message=f"{node.label} is not connected to any systems",
                remediation="Review workflow configuration",
            ))

    return signals
