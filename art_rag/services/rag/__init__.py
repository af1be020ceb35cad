from art_rag.services.rag.context_builder import TRUNCATION_MARKER, truncate_context
from art_rag.services.rag.orchestrator import (
    AskResult,
    PipelineConfig,
    RAGOrchestrator,
    generate_pipeline_id,
)

__all__ = [
    "AskResult",
    "PipelineConfig",
    "RAGOrchestrator",
    "TRUNCATION_MARKER",
    "generate_pipeline_id",
    "truncate_context",
]
