"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - timeline_save_latency_ms{kind, outcome}
    - timeline_save_errors_total{kind}
    - timeline_conflicts_flagged_total{source}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
