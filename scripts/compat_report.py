"""Print a tenant's compatibility matrix or export its integration graph.

Usage:
    uv run python scripts/compat_report.py --tenant-id <id> --app-key <key> \
        [--min-score 60] [--provider xero]

    uv run python scripts/compat_report.py --tenant-id <id> --graph \
        [--include-recommendations] [--out /tmp/graph.json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def print_matrix(tenant_id: str, app_key: str, min_score: int | None, provider: str | None) -> None:
    from app.core.compat_engine import compute_matrix
    from app.core.schemas_compat import MatrixFilters

    rows = await compute_matrix(tenant_id, app_key, MatrixFilters(provider=provider, min_score=min_score))

    print(f"\n{'='*60}")
    print(f"Compatibility matrix for {app_key} (tenant {tenant_id})")
    print(f"{'='*60}")
    if not rows:
        print("  No systems scored.")
        return
    for row in rows:
        badges = ", ".join(row.badges) if row.badges else "-"
        print(f"  {row.score:>3}  {row.system_name:<30} [{badges}]")


async def export_graph(tenant_id: str, include_recommendations: bool, out: str | None) -> None:
    from app.core.integration_graph import build_graph
    from app.core.integration_risks import extract_risk_signals
    from app.core.schemas_integration_graph import GraphBuildOptions

    graph = await build_graph(
        tenant_id, GraphBuildOptions(include_recommendations=include_recommendations)
    )
    payload = {
        "graph": graph.model_dump(mode="json", by_alias=True),
        "risks": [s.model_dump(mode="json") for s in extract_risk_signals(graph)],
    }
    text = json.dumps(payload, indent=2)

    if out:
        Path(out).write_text(text)
        print(f"Wrote {len(graph.nodes)} nodes / {len(graph.edges)} edges to {out}")
    else:
        print(text)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--tenant-id", required=True)
    parser.add_argument("--app-key", help="App key to score (matrix mode)")
    parser.add_argument("--min-score", type=int, default=None)
    parser.add_argument("--provider", default=None)
    parser.add_argument("--graph", action="store_true", help="Export the integration graph instead")
    parser.add_argument("--include-recommendations", action="store_true")
    parser.add_argument("--out", default=None, help="Write graph JSON to this path")
    args = parser.parse_args()

    if args.graph:
        asyncio.run(export_graph(args.tenant_id, args.include_recommendations, args.out))
    elif args.app_key:
        asyncio.run(print_matrix(args.tenant_id, args.app_key, args.min_score, args.provider))
    else:
        parser.error("--app-key is required unless --graph is given")


if __name__ == "__main__":
    main()
