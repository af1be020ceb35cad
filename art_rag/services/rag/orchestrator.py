"""Cache-augmented RAG pipeline.

One call to ``ask`` runs: cache lookup, then on a miss document search,
context assembly, answer generation, cache write-back and metrics
recording. Phase timings are reported in milliseconds. Retrieval and
generation failures (and an expired deadline) end the call with a
PipelineFailure result; cache and metrics failures never do.
"""

import asyncio
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from art_rag.core.config import Settings
from art_rag.core.errors import PipelineTimeoutError, RetrievalError, categorize_error
from art_rag.core.interfaces import IAnswerGenerator, IDocumentSearcher
from art_rag.core.logging import get_logger
from art_rag.models.metrics import MetricsSnapshot, RequestTiming, TopQuestion
from art_rag.models.query import (
    PipelineFailure,
    PipelineMetadata,
    RequestOptions,
    ResolvedOptions,
    ResponseEnvelope,
    RetrievedDocument,
    SearchHit,
    SearchResponse,
    SourceSummary,
)
from art_rag.models.status import ActiveConfiguration, ComponentStatus, PipelineStatus
from art_rag.services.metrics.aggregator import MetricsAggregator
from art_rag.services.rag.context_builder import build_context
from art_rag.services.response_cache.store import ResponseCacheStore

logger = get_logger(__name__)

AskResult = Union[ResponseEnvelope, PipelineFailure]

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_pipeline_id() -> str:
    """e.g. pipeline_1717171717171_k3j9x0a2b"""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"pipeline_{int(time.time() * 1000)}_{suffix}"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


@dataclass
class PipelineConfig:
    """Orchestrator defaults."""

    default_top_k: int = 5
    default_score_threshold: float = 0.6
    max_context_length: int = 4000
    request_timeout: Optional[float] = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            default_top_k=settings.default_top_k,
            default_score_threshold=settings.default_score_threshold,
            max_context_length=settings.max_context_length,
            request_timeout=settings.request_timeout_seconds or None,
        )


class RAGOrchestrator:
    """Sequences questions through cache, retrieval and generation."""

    def __init__(
        self,
        searcher: IDocumentSearcher,
        generator: IAnswerGenerator,
        cache: ResponseCacheStore,
        metrics: MetricsAggregator,
        config: Optional[PipelineConfig] = None,
    ):
        self.searcher = searcher
        self.generator = generator
        self.cache = cache
        self.metrics = metrics
        self.config = config or PipelineConfig()

    def resolve_options(self, options: Optional[RequestOptions] = None) -> ResolvedOptions:
        return (options or RequestOptions()).resolve(
            default_top_k=self.config.default_top_k,
            default_score_threshold=self.config.default_score_threshold,
            default_model=self.generator.model_name,
        )

    async def _retrieve(self, question: str, options: ResolvedOptions) -> List[RetrievedDocument]:
        # Filters take precedence; the score threshold does not apply to them
        if options.filters:
            return await self.searcher.search_with_filters(question, options.filters, options.top_k)
        return await self.searcher.search(question, options.top_k, options.score_threshold)

    # ------------------------------------------------------------------
    # ask
    # ------------------------------------------------------------------

    async def ask(
        self,
        question: str,
        options: Optional[RequestOptions] = None,
        timeout: Optional[float] = None,
    ) -> AskResult:
        """Answer a question.

        Args:
            question: Natural-language question.
            options: Per-request overrides; omitted fields use the defaults.
            timeout: Deadline in seconds for search, context assembly and
                generation together. Defaults to the configured request
                timeout.

        Returns:
            A ResponseEnvelope, or a PipelineFailure when search or
            generation fails or the deadline expires.
        """
        start = time.perf_counter()
        pipeline_id = generate_pipeline_id()
        resolved = self.resolve_options(options)
        cache_key = self.cache.key_for(question, resolved)
        logger.info(f"Starting RAG pipeline {pipeline_id} for question: {question!r}")

        cache_start = time.perf_counter()
        cached = await self.cache.get(question, resolved)
        cache_time = _elapsed_ms(cache_start)

        if cached is not None:
            logger.info(f"Cache hit for {pipeline_id} in {cache_time:.1f}ms")
            envelope = cached.served_from_cache(pipeline_id, cache_time)
            await self.metrics.record_request(
                question,
                resolved,
                envelope,
                RequestTiming(total_time=_elapsed_ms(start), cache_time=cache_time),
                from_cache=True,
                cache_key=cache_key,
            )
            return envelope

        deadline = timeout if timeout is not None else self.config.request_timeout
        progress: Dict[str, Any] = {"phase": "search"}
        try:
            envelope, timing = await asyncio.wait_for(
                self._run_pipeline(question, resolved, pipeline_id, start, progress),
                timeout=deadline,
            )
        except asyncio.TimeoutError as e:
            error = PipelineTimeoutError(
                f"Request exceeded its {deadline}s deadline during {progress['phase']}",
                timeout=deadline,
                phase=progress["phase"],
            )
            error.__cause__ = e
            return await self._fail(question, pipeline_id, start, error, progress["phase"])
        except Exception as e:
            return await self._fail(question, pipeline_id, start, e, progress["phase"])

        set_start = time.perf_counter()
        await self.cache.set(question, resolved, envelope)
        timing.cache_time = cache_time + _elapsed_ms(set_start)
        timing.total_time = _elapsed_ms(start)

        await self.metrics.record_request(
            question, resolved, envelope, timing, from_cache=False, cache_key=cache_key
        )
        logger.info(f"RAG pipeline {pipeline_id} completed in {timing.total_time:.1f}ms")
        return envelope

    async def _run_pipeline(
        self,
        question: str,
        options: ResolvedOptions,
        pipeline_id: str,
        start: float,
        progress: Dict[str, Any],
    ) -> Tuple[ResponseEnvelope, RequestTiming]:
        progress["phase"] = "search"
        search_start = time.perf_counter()
        documents = await self._retrieve(question, options)
        search_time = _elapsed_ms(search_start)
        logger.info(f"Found {len(documents)} documents in {search_time:.1f}ms")

        progress["phase"] = "context"
        context_start = time.perf_counter()
        context = build_context(self.generator, documents, self.config.max_context_length)
        context_time = _elapsed_ms(context_start)

        progress["phase"] = "generation"
        generation_start = time.perf_counter()
        generation = await self.generator.generate_answer(context, question)
        generation_time = _elapsed_ms(generation_start)

        progress["phase"] = "assemble"
        total_time = _elapsed_ms(start)
        envelope = ResponseEnvelope(
            question=question,
            answer=generation.answer,
            sources=[SourceSummary.from_document(document) for document in documents],
            metadata=PipelineMetadata(
                pipeline_id=pipeline_id,
                total_processing_time=total_time,
                search_time=search_time,
                context_time=context_time,
                generation_time=generation_time,
                llm_processing_time=generation.processing_time,
                documents_found=len(documents),
                context_length=len(context),
                model=generation.model,
                timestamp=datetime.now(timezone.utc),
                search_options_used=options,
                from_cache=False,
            ),
        )
        timing = RequestTiming(
            total_time=total_time,
            search_time=search_time,
            context_time=context_time,
            generation_time=generation_time,
        )
        return envelope, timing

    async def _fail(
        self,
        question: str,
        pipeline_id: str,
        start: float,
        error: Exception,
        phase: str,
    ) -> PipelineFailure:
        total_time = _elapsed_ms(start)
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        logger.error(f"RAG pipeline {pipeline_id} failed after {total_time:.1f}ms in {phase}: {message}")

        await self.metrics.record_error(
            "RAG_PIPELINE",
            message,
            {"question": question, "pipelineId": pipeline_id, "totalTime": total_time, "phase": phase},
            error=error,
        )
        return PipelineFailure(
            error=message,
            category=categorize_error(error).value,
            pipeline_id=pipeline_id,
            total_processing_time=total_time,
            question=question,
        )

    # ------------------------------------------------------------------
    # search / status
    # ------------------------------------------------------------------

    async def search(self, query: str, options: Optional[RequestOptions] = None) -> SearchResponse:
        """Retrieval without generation.

        Raises:
            RetrievalError: If the search collaborator fails.
        """
        resolved = self.resolve_options(options)
        start = time.perf_counter()
        try:
            documents = await self._retrieve(query, resolved)
        except Exception as e:
            await self.metrics.record_error("SEARCH", str(e), {"query": query}, error=e)
            if isinstance(e, RetrievalError):
                raise
            raise RetrievalError(f"Document search failed: {e}", query=query) from e

        response = SearchResponse(
            query=query,
            documents=[
                SearchHit(id=document.id, score=document.score, metadata=document.metadata)
                for document in documents
            ],
            total=len(documents),
        )
        await self.metrics.record_search(query, resolved.filters, response, _elapsed_ms(start))
        return response

    def active_configuration(self) -> ActiveConfiguration:
        return ActiveConfiguration(
            top_k=self.config.default_top_k,
            score_threshold=self.config.default_score_threshold,
            max_context_length=self.config.max_context_length,
            model=self.generator.model_name,
        )

    async def get_status(self) -> PipelineStatus:
        """Aggregate collaborator health. Never raises."""
        errors: List[str] = []

        index = None
        try:
            index = await self.searcher.index_stats()
        except Exception as e:
            errors.append(f"search: {e}")

        try:
            llm_ok = bool(await self.generator.test_connection())
        except Exception as e:
            llm_ok = False
            errors.append(f"llm: {e}")
        else:
            if not llm_ok:
                errors.append("llm: connection test failed")

        cache_stats = await self.cache.stats()
        if self.cache.is_degraded:
            errors.append(f"cache: preferred backend unavailable, using {self.cache.backend_kind}")

        search_ok = index is not None
        if search_ok and llm_ok and not self.cache.is_degraded:
            status = "healthy"
        elif not search_ok and not llm_ok:
            status = "error"
        else:
            status = "degraded"

        return PipelineStatus(
            status=status,
            components=ComponentStatus(
                search=search_ok,
                llm=llm_ok,
                cache=cache_stats.get("entryCount") is not None,
            ),
            index=index,
            cache=cache_stats,
            metrics=self.metrics.snapshot(),
            configuration=self.active_configuration(),
            errors=errors,
        )

    async def self_test(self) -> Dict[str, bool]:
        """Exercise the cache and probe both collaborators."""
        options = self.resolve_options()
        probe = ResponseEnvelope(
            question="self test",
            answer="self test answer",
            metadata=PipelineMetadata(
                pipeline_id=generate_pipeline_id(),
                total_processing_time=0.0,
                search_time=0.0,
                context_time=0.0,
                generation_time=0.0,
                documents_found=0,
                context_length=0,
                model=options.model,
                timestamp=datetime.now(timezone.utc),
                search_options_used=options,
            ),
        )
        results = {"cache": await self.cache.self_test(probe)}
        try:
            results["llm"] = bool(await self.generator.test_connection())
        except Exception as e:
            logger.warning(f"LLM self-test failed: {e}")
            results["llm"] = False
        try:
            await self.searcher.index_stats()
            results["search"] = True
        except Exception as e:
            logger.warning(f"Search self-test failed: {e}")
            results["search"] = False
        results["success"] = all(results.values())
        return results

    # ------------------------------------------------------------------
    # Helpers for the HTTP layer and CLI
    # ------------------------------------------------------------------

    def get_metrics(self) -> MetricsSnapshot:
        return self.metrics.snapshot()

    def get_top_questions(self, limit: Optional[int] = None) -> List[TopQuestion]:
        return self.metrics.top_questions(limit)

    async def export_metrics(self, filename: Optional[str] = None) -> Dict[str, Any]:
        return await self.metrics.export_snapshot(filename)

    async def prune_logs(self, days: float) -> int:
        return await self.metrics.prune_older_than(days)

    async def clear_cache(self) -> bool:
        return await self.cache.clear()

    async def get_cache_stats(self) -> Dict[str, Any]:
        return await self.cache.stats()
