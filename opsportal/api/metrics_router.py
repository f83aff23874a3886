"""
Metrics endpoint for Prometheus scraping.
"""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Includes tenant resolution, access decision and session switch
    counters next to the HTTP metrics.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
