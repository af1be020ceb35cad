"""Metrics snapshot models."""

from pydantic import Field
from typing import Dict, List, Optional
from datetime import datetime, timezone

from art_rag.models.query import CamelModel


class RequestTiming(CamelModel):
    """Per-phase timing of one request, in milliseconds."""
    total_time: float = 0.0
    search_time: float = 0.0
    context_time: float = 0.0
    generation_time: float = 0.0
    cache_time: float = 0.0


class TopQuestion(CamelModel):
    question: str
    count: int


class DocumentRetrievalStats(CamelModel):
    total_searches: int = 0
    average_documents_found: float = 0.0
    average_score: float = 0.0


class GenerationStats(CamelModel):
    total_generations: int = 0
    average_generation_time: float = 0.0
    total_generation_time: float = 0.0


class MetricsSnapshot(CamelModel):
    """Point-in-time copy of the aggregated request metrics."""
    total_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    errors: int = 0
    total_searches: int = 0
    average_processing_time: float = 0.0
    cache_hit_rate: float = 0.0
    error_rate: float = 0.0
    unique_questions: int = 0
    hourly_distribution: List[int] = Field(default_factory=lambda: [0] * 24)
    document_retrieval: DocumentRetrievalStats = Field(default_factory=DocumentRetrievalStats)
    generation: GenerationStats = Field(default_factory=GenerationStats)
    latency: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_request_at: Optional[datetime] = None
