"""Question answering and search endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from art_rag.api.deps import get_orchestrator
from art_rag.core.errors import RetrievalError
from art_rag.core.logging import get_logger
from art_rag.models.query import PipelineFailure, QuestionRequest, ResponseEnvelope, SearchResponse
from art_rag.services.rag.orchestrator import RAGOrchestrator

logger = get_logger(__name__)

router = APIRouter()


@router.post("/ask", response_model=ResponseEnvelope)
async def ask(
    body: QuestionRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
):
    """Answer a question about the collection."""
    result = await orchestrator.ask(body.question.strip(), body.to_options())

    if isinstance(result, PipelineFailure):
        return JSONResponse(
            status_code=500,
            content={
                "error": "RAG_ERROR",
                "message": result.error or "Failed to process question",
                "pipelineId": result.pipeline_id,
                "question": result.question,
                "timestamp": result.timestamp.isoformat(),
            },
        )
    return result


@router.post("/search", response_model=SearchResponse)
async def search(
    body: QuestionRequest,
    orchestrator: RAGOrchestrator = Depends(get_orchestrator),
):
    """Search for documents without generating an answer."""
    try:
        return await orchestrator.search(body.question.strip(), body.to_options())
    except RetrievalError as e:
        logger.error(f"Search API error: {e.message}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "SEARCH_ERROR",
                "message": e.message or "Failed to search documents",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
