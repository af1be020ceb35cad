from art_rag.models.metrics import MetricsSnapshot, RequestTiming, TopQuestion
from art_rag.models.query import (
    PipelineFailure,
    PipelineMetadata,
    QuestionRequest,
    RequestOptions,
    ResolvedOptions,
    ResponseEnvelope,
    RetrievedDocument,
    SearchResponse,
    SourceSummary,
)
from art_rag.models.status import IndexStats, PipelineStatus

__all__ = [
    "IndexStats",
    "MetricsSnapshot",
    "PipelineFailure",
    "PipelineMetadata",
    "PipelineStatus",
    "QuestionRequest",
    "RequestOptions",
    "RequestTiming",
    "ResolvedOptions",
    "ResponseEnvelope",
    "RetrievedDocument",
    "SearchResponse",
    "SourceSummary",
    "TopQuestion",
]
