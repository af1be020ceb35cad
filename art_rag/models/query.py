"""Request, response and pipeline result models."""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone

from art_rag.core.config import settings


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResolvedOptions(CamelModel):
    """Request options with every default applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    top_k: int = Field(..., description="Number of documents to retrieve")
    score_threshold: float = Field(..., description="Minimum relevance score")
    filters: Dict[str, Any] = Field(default_factory=dict, description="Metadata equality filters")
    model: str = Field(..., description="Generation model identifier")


class RequestOptions(CamelModel):
    """Per-request options; omitted fields fall back to configured defaults."""

    top_k: Optional[int] = Field(None, ge=1, le=settings.max_top_k, description="Number of documents to retrieve")
    score_threshold: Optional[float] = Field(None, ge=0.0, le=1.0, description="Minimum relevance score")
    filters: Optional[Dict[str, Any]] = Field(None, description="Metadata equality filters")
    model: Optional[str] = Field(None, description="Generation model identifier")

    def resolve(
        self,
        default_top_k: int,
        default_score_threshold: float,
        default_model: str,
    ) -> ResolvedOptions:
        """Fill omitted fields. Explicit zero values are kept."""
        return ResolvedOptions(
            top_k=self.top_k if self.top_k is not None else default_top_k,
            score_threshold=(
                self.score_threshold
                if self.score_threshold is not None
                else default_score_threshold
            ),
            filters=dict(self.filters or {}),
            model=self.model or default_model,
        )


class RetrievedDocument(BaseModel):
    """A scored passage returned by the document searcher."""
    id: str = Field(..., description="Vector id")
    score: float = Field(..., description="Relevance score")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Artwork metadata")
    content: str = Field("", description="Passage text")


class SourceSummary(CamelModel):
    """Projection of a retrieved document returned with an answer."""
    id: str
    title: Optional[str] = None
    artist: Optional[str] = None
    accession_number: Optional[str] = None
    score: float
    chunk_index: Optional[int] = None

    @classmethod
    def from_document(cls, document: RetrievedDocument) -> "SourceSummary":
        metadata = document.metadata
        chunk_index = metadata.get("chunkIndex", metadata.get("chunk_index"))
        return cls(
            id=document.id,
            title=metadata.get("title"),
            artist=metadata.get("artist"),
            accession_number=metadata.get("accession_number", metadata.get("accessionNumber")),
            score=document.score,
            chunk_index=int(chunk_index) if chunk_index is not None else None,
        )


class PipelineMetadata(CamelModel):
    """Timing and provenance attached to every answer. Times are milliseconds."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    pipeline_id: str
    total_processing_time: float
    search_time: float
    context_time: float
    generation_time: float
    llm_processing_time: Optional[float] = None
    documents_found: int
    context_length: int
    model: str
    timestamp: datetime
    search_options_used: ResolvedOptions
    from_cache: bool = False
    cache_time: Optional[float] = None


class ResponseEnvelope(CamelModel):
    """Complete answer returned to a caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    question: str
    answer: str
    sources: List[SourceSummary] = Field(default_factory=list)
    metadata: PipelineMetadata

    def served_from_cache(self, pipeline_id: str, cache_time: float) -> "ResponseEnvelope":
        """Return a copy marked as a cache hit for a new pipeline run."""
        metadata = self.metadata.model_copy(update={
            "pipeline_id": pipeline_id,
            "from_cache": True,
            "cache_time": cache_time,
        })
        return self.model_copy(update={"metadata": metadata})


class GenerationResult(CamelModel):
    """Output of the answer generator."""
    answer: str
    processing_time: float = Field(..., description="Generation time in milliseconds")
    model: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PipelineFailure(CamelModel):
    """Structured failure returned instead of an envelope."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    error: str = Field(..., description="Human-readable failure message")
    category: str = Field("unknown", description="Error category")
    pipeline_id: str
    total_processing_time: float
    question: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class QuestionRequest(CamelModel):
    """Body accepted by the ask and search endpoints."""
    question: str = Field(..., description="Natural-language question")
    top_k: Optional[int] = Field(None, description="Number of documents to retrieve")
    score_threshold: Optional[float] = Field(None, description="Minimum relevance score (0-1)")
    filters: Optional[Dict[str, Any]] = Field(None, description="Metadata equality filters")

    @field_validator("question")
    @classmethod
    def validate_question(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Question is required and must be a non-empty string")
        if len(value) > settings.max_question_length:
            raise ValueError(
                f"Question must be less than {settings.max_question_length} characters"
            )
        return value

    @field_validator("top_k")
    @classmethod
    def validate_top_k(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not 1 <= value <= settings.max_top_k:
            raise ValueError(f"topK must be a number between 1 and {settings.max_top_k}")
        return value

    @field_validator("score_threshold")
    @classmethod
    def validate_score_threshold(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not 0.0 <= value <= 1.0:
            raise ValueError("scoreThreshold must be a number between 0 and 1")
        return value

    def to_options(self) -> RequestOptions:
        return RequestOptions(
            top_k=self.top_k,
            score_threshold=self.score_threshold,
            filters=self.filters,
        )


class SearchHit(BaseModel):
    """Search result entry without passage text."""
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    """Result of a plain search without generation."""
    query: str
    documents: List[SearchHit] = Field(default_factory=list)
    total: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
