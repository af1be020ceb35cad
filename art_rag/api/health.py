"""Health and pipeline status endpoints."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from art_rag.api.deps import get_orchestrator
from art_rag.core.config import settings
from art_rag.models.status import PipelineStatus
from art_rag.services.rag.orchestrator import RAGOrchestrator

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, Any]:
    """Liveness check; does not touch collaborators."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status", response_model=PipelineStatus)
async def status(orchestrator: RAGOrchestrator = Depends(get_orchestrator)) -> PipelineStatus:
    """Aggregated health of search, generation, cache and metrics."""
    return await orchestrator.get_status()
