"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import compat, integration_graph

router = APIRouter()

# Compatibility scoring routes (fit score and matrix)
router.include_router(compat.router, tags=["compat"])

# Integration topology routes (graph, risks, export)
router.include_router(integration_graph.router, tags=["integration_graph"])
