"""Metrics API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from art_rag.api.deps import get_metrics
from art_rag.models.metrics import MetricsSnapshot, TopQuestion
from art_rag.services.metrics.aggregator import MetricsAggregator

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=MetricsSnapshot)
async def metrics_snapshot(metrics: MetricsAggregator = Depends(get_metrics)) -> MetricsSnapshot:
    """Return the current aggregated request metrics."""
    return metrics.snapshot()


@router.get("/top-questions", response_model=List[TopQuestion])
async def top_questions(
    limit: Optional[int] = Query(None, ge=1, le=100),
    metrics: MetricsAggregator = Depends(get_metrics),
) -> List[TopQuestion]:
    return metrics.top_questions(limit)


@router.get("/prometheus", response_class=PlainTextResponse)
async def prometheus(metrics: MetricsAggregator = Depends(get_metrics)) -> str:
    return metrics.export_prometheus()


@router.post("/export")
async def export(
    filename: Optional[str] = Query(None, pattern=r"^[\w.-]+\.json$"),
    metrics: MetricsAggregator = Depends(get_metrics),
) -> Dict[str, Any]:
    """Return the export document, also writing it to the log directory when a filename is given."""
    return await metrics.export_snapshot(filename)
