"""Response cache administration endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from art_rag.api.deps import get_orchestrator
from art_rag.core.logging import get_logger
from art_rag.services.rag.orchestrator import RAGOrchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats")
async def cache_stats(orchestrator: RAGOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    return await orchestrator.get_cache_stats()


@router.delete("")
async def clear_cache(orchestrator: RAGOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    success = await orchestrator.clear_cache()
    logger.info(f"Cache clear requested via API (success={success})")
    return {"success": success}
