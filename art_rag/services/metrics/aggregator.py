"""In-process request metrics with durable event logs.

A single MetricsAggregator is owned by the service container and handed to
the orchestrator; there is no module-level instance. Aggregate updates run
under a lock so concurrent requests (including ones recorded from worker
threads) cannot lose updates.
"""

import statistics
import threading
import traceback
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

from art_rag.core.logging import get_logger
from art_rag.models.metrics import (
    DocumentRetrievalStats,
    GenerationStats,
    MetricsSnapshot,
    RequestTiming,
    TopQuestion,
)
from art_rag.models.query import ResolvedOptions, ResponseEnvelope, SearchResponse
from art_rag.services.metrics.event_log import (
    ERROR_LOG,
    REQUEST_LOG,
    SEARCH_LOG,
    EventLogWriter,
)

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LatencyWindow:
    """Sliding window of recent latency samples."""

    def __init__(self, name: str, window_size: int = 1000):
        self.name = name
        self.values: Deque[float] = deque(maxlen=window_size)
        self.total_count = 0
        self.total_sum = 0.0

    def record(self, value: float) -> None:
        self.values.append(value)
        self.total_count += 1
        self.total_sum += value

    def get_stats(self) -> Dict[str, float]:
        if not self.values:
            return {"count": 0, "mean": 0.0, "min": 0.0, "max": 0.0, "p50": 0.0, "p95": 0.0, "p99": 0.0}

        sorted_values = sorted(self.values)
        last_index = len(sorted_values) - 1

        def percentile(ratio: float) -> float:
            return sorted_values[min(int(len(sorted_values) * ratio), last_index)]

        return {
            "count": self.total_count,
            "mean": statistics.mean(self.values),
            "min": sorted_values[0],
            "max": sorted_values[-1],
            "p50": percentile(0.5),
            "p95": percentile(0.95),
            "p99": percentile(0.99),
        }


class MetricsAggregator:
    """Running counters, averages and histograms over pipeline events."""

    def __init__(
        self,
        writer: Optional[EventLogWriter] = None,
        enabled: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        latency_window: int = 1000,
        top_questions_limit: int = 10,
    ):
        self.writer = writer
        self.top_questions_limit = top_questions_limit
        self.enabled = enabled
        self._clock = clock
        self._latency_window = latency_window
        self._lock = threading.Lock()
        self._init_state()

    def _init_state(self) -> None:
        self.started_at = self._clock()
        self.last_request_at: Optional[datetime] = None
        self.total_requests = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.errors = 0
        self.total_searches = 0
        self.average_processing_time = 0.0
        self.question_counts: Dict[str, int] = {}
        self.hourly: List[int] = [0] * 24
        self.average_documents_found = 0.0
        self.average_score = 0.0
        self.generations = 0
        self.average_generation_time = 0.0
        self.total_generation_time = 0.0
        self.latency: Dict[str, LatencyWindow] = {
            name: LatencyWindow(name, self._latency_window)
            for name in ("total_time_ms", "search_time_ms", "generation_time_ms")
        }

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def record_request(
        self,
        question: str,
        options: ResolvedOptions,
        envelope: ResponseEnvelope,
        timing: RequestTiming,
        from_cache: bool,
        cache_key: Optional[str] = None,
    ) -> None:
        """Fold one completed request into the aggregates and log it."""
        if not self.enabled:
            return

        timestamp = self._clock()
        scores = [source.score for source in envelope.sources]
        average_score = sum(scores) / len(scores) if scores else 0.0

        with self._lock:
            self.total_requests += 1
            n = self.total_requests
            if from_cache:
                self.cache_hits += 1
            else:
                self.cache_misses += 1

            self.average_processing_time += (timing.total_time - self.average_processing_time) / n

            normalized = question.lower().strip()
            self.question_counts[normalized] = self.question_counts.get(normalized, 0) + 1
            self.hourly[timestamp.astimezone(timezone.utc).hour] += 1

            self.average_documents_found += (len(scores) - self.average_documents_found) / n
            self.average_score += (average_score - self.average_score) / n

            if timing.generation_time > 0:
                self.generations += 1
                self.total_generation_time += timing.generation_time
                self.average_generation_time += (
                    timing.generation_time - self.average_generation_time
                ) / self.generations

            self.latency["total_time_ms"].record(timing.total_time)
            if not from_cache:
                self.latency["search_time_ms"].record(timing.search_time)
                self.latency["generation_time_ms"].record(timing.generation_time)
            self.last_request_at = timestamp

        if self.writer is None:
            return
        await self.writer.append(REQUEST_LOG, {
            "timestamp": timestamp.isoformat(),
            "type": "rag_request",
            "request": {
                "question": question,
                "topK": options.top_k,
                "scoreThreshold": options.score_threshold,
                "filters": options.filters,
            },
            "response": {
                "answerLength": len(envelope.answer),
                "sourcesCount": len(scores),
                "averageScore": average_score,
            },
            "timing": timing.model_dump(by_alias=True),
            "cache": {"hit": from_cache, "key": cache_key},
            "metadata": {
                "pipelineId": envelope.metadata.pipeline_id,
                "model": envelope.metadata.model,
                "documentsFound": envelope.metadata.documents_found,
            },
        })

    async def record_search(
        self,
        query: str,
        filters: Optional[Dict[str, Any]],
        response: SearchResponse,
        total_time: float,
    ) -> None:
        """Log a plain search. Only the search counter is aggregated."""
        if not self.enabled:
            return

        scores = [document.score for document in response.documents]
        with self._lock:
            self.total_searches += 1

        if self.writer is None:
            return
        await self.writer.append(SEARCH_LOG, {
            "timestamp": self._clock().isoformat(),
            "type": "search_request",
            "request": {"query": query, "filters": filters or {}},
            "response": {
                "documentsFound": len(scores),
                "averageScore": sum(scores) / len(scores) if scores else 0.0,
            },
            "timing": {"totalTime": total_time},
        })

    async def record_error(
        self,
        kind: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Count an error and log it with its stack when one is available."""
        if not self.enabled:
            return

        with self._lock:
            self.errors += 1

        stack = None
        if error is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        if self.writer is None:
            return
        await self.writer.append(ERROR_LOG, {
            "timestamp": self._clock().isoformat(),
            "type": "error",
            "kind": kind,
            "message": message,
            "context": context or {},
            "stack": stack,
        })

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            lookups = self.cache_hits + self.cache_misses
            return MetricsSnapshot(
                total_requests=self.total_requests,
                cache_hits=self.cache_hits,
                cache_misses=self.cache_misses,
                errors=self.errors,
                total_searches=self.total_searches,
                average_processing_time=self.average_processing_time,
                cache_hit_rate=self.cache_hits / lookups if lookups else 0.0,
                error_rate=self.errors / self.total_requests if self.total_requests else 0.0,
                unique_questions=len(self.question_counts),
                hourly_distribution=list(self.hourly),
                document_retrieval=DocumentRetrievalStats(
                    total_searches=self.total_requests,
                    average_documents_found=self.average_documents_found,
                    average_score=self.average_score,
                ),
                generation=GenerationStats(
                    total_generations=self.generations,
                    average_generation_time=self.average_generation_time,
                    total_generation_time=self.total_generation_time,
                ),
                latency={name: window.get_stats() for name, window in self.latency.items()},
                started_at=self.started_at,
                last_request_at=self.last_request_at,
            )

    def top_questions(self, limit: Optional[int] = None) -> List[TopQuestion]:
        """Most frequent questions; ties keep first-seen order."""
        limit = self.top_questions_limit if limit is None else limit
        with self._lock:
            items = list(self.question_counts.items())
        # sorted() is stable and dicts keep insertion order
        ranked = sorted(items, key=lambda item: -item[1])
        return [TopQuestion(question=question, count=count) for question, count in ranked[:limit]]

    def hourly_distribution(self) -> List[int]:
        with self._lock:
            return list(self.hourly)

    # ------------------------------------------------------------------
    # Maintenance / export
    # ------------------------------------------------------------------

    async def prune_older_than(self, days: float) -> int:
        if self.writer is None:
            return 0
        return await self.writer.prune_older_than(days)

    async def export_snapshot(self, filename: Optional[str] = None, top_limit: Optional[int] = None) -> Dict[str, Any]:
        """Build the export document and optionally write it next to the logs."""
        data = {
            "timestamp": self._clock().isoformat(),
            "metrics": self.snapshot().model_dump(mode="json", by_alias=True),
            "topQuestions": [q.model_dump(by_alias=True) for q in self.top_questions(top_limit)],
            "hourlyDistribution": self.hourly_distribution(),
        }
        if filename and self.writer is not None:
            await self.writer.write_json(filename, data)
        return data

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        snapshot = self.snapshot()
        lines = []

        uptime = (self._clock() - snapshot.started_at).total_seconds()
        lines.append("# HELP art_rag_uptime_seconds Time since metrics start")
        lines.append("# TYPE art_rag_uptime_seconds gauge")
        lines.append(f"art_rag_uptime_seconds {uptime}")

        for name, value in [
            ("requests", snapshot.total_requests),
            ("cache_hits", snapshot.cache_hits),
            ("cache_misses", snapshot.cache_misses),
            ("errors", snapshot.errors),
            ("searches", snapshot.total_searches),
        ]:
            lines.append(f"# HELP art_rag_{name}_total Counter for {name}")
            lines.append(f"# TYPE art_rag_{name}_total counter")
            lines.append(f"art_rag_{name}_total {value}")

        for name, value in [
            ("cache_hit_rate", snapshot.cache_hit_rate),
            ("error_rate", snapshot.error_rate),
            ("average_processing_time_ms", snapshot.average_processing_time),
        ]:
            lines.append(f"# HELP art_rag_{name} Gauge for {name}")
            lines.append(f"# TYPE art_rag_{name} gauge")
            lines.append(f"art_rag_{name} {value}")

        for name, stats in snapshot.latency.items():
            lines.append(f"# HELP art_rag_{name} Latency summary for {name}")
            lines.append(f"# TYPE art_rag_{name} summary")
            for quantile, key in [("0.5", "p50"), ("0.95", "p95"), ("0.99", "p99")]:
                lines.append(f'art_rag_{name}{{quantile="{quantile}"}} {stats[key]}')
            lines.append(f"art_rag_{name}_count {int(stats['count'])}")
            lines.append(f"art_rag_{name}_sum {stats['count'] * stats['mean']}")

        return "\n".join(lines)

    def reset(self) -> None:
        """Reset all aggregates (used by tests and the admin CLI)."""
        with self._lock:
            self._init_state()
