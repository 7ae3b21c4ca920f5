"""Metrics endpoint for Prometheus scraping."""

from fastapi import APIRouter, Response

from ..core.observability import get_prometheus_metrics

router = APIRouter(tags=["Observability"])

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


@router.get("/metrics", response_class=Response, summary="Prometheus Metrics")
async def metrics() -> Response:
    """Expose request and catalog metrics in the Prometheus text format."""
    return Response(content=get_prometheus_metrics(), media_type=PROMETHEUS_CONTENT_TYPE)
