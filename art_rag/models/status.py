"""Health and status models."""

from pydantic import Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime, timezone

from art_rag.models.query import CamelModel
from art_rag.models.metrics import MetricsSnapshot


class IndexStats(CamelModel):
    """Vector index statistics reported by the document searcher."""
    total_vector_count: int = 0
    dimension: int = 0
    namespaces: Dict[str, Any] = Field(default_factory=dict)


class ComponentStatus(CamelModel):
    search: bool = False
    llm: bool = False
    cache: bool = False


class ActiveConfiguration(CamelModel):
    top_k: int
    score_threshold: float
    max_context_length: int
    model: str


class PipelineStatus(CamelModel):
    """Aggregated health of the pipeline and its collaborators."""
    status: Literal["healthy", "degraded", "error"]
    components: ComponentStatus
    index: Optional[IndexStats] = None
    cache: Dict[str, Any] = Field(default_factory=dict)
    metrics: Optional[MetricsSnapshot] = None
    configuration: Optional[ActiveConfiguration] = None
    errors: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
