"""Shared test fixtures for the art collection RAG service."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from langchain_core.language_models import FakeListChatModel

from art_rag.core.errors import RetrievalError
from art_rag.models.query import (
    PipelineMetadata,
    ResolvedOptions,
    ResponseEnvelope,
    RetrievedDocument,
    SourceSummary,
)
from art_rag.models.status import IndexStats
from art_rag.services.generation import AnswerGenerator
from art_rag.services.metrics import EventLogWriter, MetricsAggregator
from art_rag.services.rag import PipelineConfig, RAGOrchestrator
from art_rag.services.response_cache import CacheConfig, ResponseCacheStore
from art_rag.services.response_cache.backends import MemoryBackend


# ============================================================================
# Helpers
# ============================================================================

class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSearcher:
    """In-memory document searcher recording every call."""

    def __init__(self, documents: Optional[List[RetrievedDocument]] = None):
        self.documents = documents or []
        self.calls: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.stats = IndexStats(total_vector_count=len(self.documents), dimension=768)

    async def search(self, query: str, top_k: int, score_threshold: float) -> List[RetrievedDocument]:
        self.calls.append({"mode": "threshold", "query": query, "top_k": top_k, "score_threshold": score_threshold})
        await self._maybe_fail()
        matches = [d for d in self.documents if d.score >= score_threshold]
        return sorted(matches, key=lambda d: d.score, reverse=True)[:top_k]

    async def search_with_filters(self, query: str, filters: Dict[str, Any], top_k: int) -> List[RetrievedDocument]:
        self.calls.append({"mode": "filters", "query": query, "filters": filters, "top_k": top_k})
        await self._maybe_fail()
        matches = [
            d for d in self.documents
            if all(d.metadata.get(field) == value for field, value in filters.items())
        ]
        return sorted(matches, key=lambda d: d.score, reverse=True)[:top_k]

    async def index_stats(self) -> IndexStats:
        await self._maybe_fail()
        return self.stats

    async def _maybe_fail(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


def make_document(doc_id: str, score: float, **metadata: Any) -> RetrievedDocument:
    metadata.setdefault("title", f"Artwork {doc_id}")
    metadata.setdefault("artist", "Unknown artist")
    metadata.setdefault("accession_number", f"ACC.{doc_id}")
    metadata.setdefault("chunkIndex", 0)
    return RetrievedDocument(
        id=doc_id,
        score=score,
        metadata=metadata,
        content=f"Description of artwork {doc_id}.",
    )


def make_envelope(
    question: str = "Who painted the water lilies?",
    answer: str = "Claude Monet.",
    options: Optional[ResolvedOptions] = None,
) -> ResponseEnvelope:
    options = options or ResolvedOptions(top_k=5, score_threshold=0.6, filters={}, model="gemma2:2b")
    return ResponseEnvelope(
        question=question,
        answer=answer,
        sources=[
            SourceSummary(
                id="doc-1",
                title="Water Lilies",
                artist="Claude Monet",
                accession_number="96.36",
                score=0.91,
                chunk_index=0,
            )
        ],
        metadata=PipelineMetadata(
            pipeline_id="pipeline_1_abcdefghi",
            total_processing_time=120.0,
            search_time=20.0,
            context_time=1.0,
            generation_time=95.0,
            llm_processing_time=94.0,
            documents_found=1,
            context_length=250,
            model=options.model,
            timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            search_options_used=options,
        ),
    )


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    """Create a fresh memory backend driven by the fake clock."""
    return MemoryBackend(clock=clock)


@pytest.fixture
async def connected_memory_backend(memory_backend):
    """Create a connected memory backend."""
    await memory_backend.connect()
    yield memory_backend
    await memory_backend.disconnect()


@pytest.fixture
def options():
    return ResolvedOptions(top_k=5, score_threshold=0.6, filters={}, model="gemma2:2b")


@pytest.fixture
async def cache_store(memory_backend):
    """Response cache running on the in-process backend only."""
    store = ResponseCacheStore(fallback=memory_backend, config=CacheConfig(ttl=60, prefix="test:"))
    await store.connect()
    yield store
    await store.disconnect()


# ============================================================================
# Metrics Fixtures
# ============================================================================

@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def event_writer(log_dir):
    return EventLogWriter(str(log_dir), max_bytes=1024 * 1024)


@pytest.fixture
def metrics(event_writer):
    return MetricsAggregator(writer=event_writer)


# ============================================================================
# Pipeline Fixtures
# ============================================================================

@pytest.fixture
def documents():
    return [
        make_document("doc-1", 0.92, artist="Qi Baishi", medium="Ink on paper", country="China"),
        make_document("doc-2", 0.81, artist="Xu Beihong", medium="Ink on paper", country="China"),
        make_document("doc-3", 0.64, artist="Wu Guanzhong", medium="Oil on canvas", country="China"),
        make_document("doc-4", 0.10, artist="Zao Wou-Ki", medium="Oil on canvas", country="China"),
    ]


@pytest.fixture
def searcher(documents):
    return FakeSearcher(documents)


@pytest.fixture
def chat_model():
    return FakeListChatModel(responses=["The collection includes works by Qi Baishi and Xu Beihong."])


@pytest.fixture
def generator(chat_model):
    return AnswerGenerator(chat_model, "gemma2:2b")


@pytest.fixture
def pipeline_config():
    return PipelineConfig(
        default_top_k=5,
        default_score_threshold=0.6,
        max_context_length=4000,
        request_timeout=5.0,
    )


@pytest.fixture
def orchestrator(searcher, generator, cache_store, metrics, pipeline_config):
    return RAGOrchestrator(
        searcher=searcher,
        generator=generator,
        cache=cache_store,
        metrics=metrics,
        config=pipeline_config,
    )


@pytest.fixture
def failing_searcher(searcher):
    searcher.error = RetrievalError("Vector store unreachable")
    return searcher
