"""Tests for the metrics aggregator."""

import json
import threading
from datetime import datetime, timezone

import pytest

from art_rag.models.metrics import RequestTiming
from art_rag.services.metrics import MetricsAggregator

from conftest import make_envelope


def fixed_clock(hour: int = 12):
    return lambda: datetime(2024, 5, 1, hour, 30, tzinfo=timezone.utc)


async def record(metrics, options, question="Who painted the water lilies?", total=100.0,
                 generation=50.0, from_cache=False):
    await metrics.record_request(
        question,
        options,
        make_envelope(question=question, options=options),
        RequestTiming(total_time=total, search_time=10.0, generation_time=generation),
        from_cache=from_cache,
        cache_key="test:v1:abc",
    )


class TestRunningAggregates:
    """Tests for counters and running means."""

    @pytest.mark.asyncio
    async def test_empty_snapshot_rates_are_zero(self, metrics):
        snapshot = metrics.snapshot()
        assert snapshot.total_requests == 0
        assert snapshot.cache_hit_rate == 0.0
        assert snapshot.error_rate == 0.0
        assert snapshot.hourly_distribution == [0] * 24

    @pytest.mark.asyncio
    async def test_incremental_mean_matches_arithmetic_mean(self, metrics, options):
        timings = [120.0, 45.5, 3000.25, 0.0, 87.0, 12.75]
        for value in timings:
            await record(metrics, options, total=value)

        snapshot = metrics.snapshot()
        assert snapshot.total_requests == len(timings)
        assert snapshot.average_processing_time == pytest.approx(sum(timings) / len(timings))

    @pytest.mark.asyncio
    async def test_hit_rate(self, metrics, options):
        await record(metrics, options, from_cache=True, generation=0.0)
        await record(metrics, options)
        await record(metrics, options)
        await record(metrics, options, from_cache=True, generation=0.0)

        snapshot = metrics.snapshot()
        assert snapshot.cache_hits == 2
        assert snapshot.cache_misses == 2
        assert snapshot.cache_hit_rate == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_generation_mean_only_counts_generations(self, metrics, options):
        await record(metrics, options, generation=100.0)
        await record(metrics, options, generation=0.0, from_cache=True)
        await record(metrics, options, generation=300.0)

        generation = metrics.snapshot().generation
        assert generation.total_generations == 2
        assert generation.average_generation_time == pytest.approx(200.0)
        assert generation.total_generation_time == pytest.approx(400.0)

    @pytest.mark.asyncio
    async def test_document_retrieval_stats(self, metrics, options):
        await record(metrics, options)
        retrieval = metrics.snapshot().document_retrieval
        assert retrieval.average_documents_found == pytest.approx(1.0)
        assert retrieval.average_score == pytest.approx(0.91)

    @pytest.mark.asyncio
    async def test_error_rate(self, metrics, options):
        await record(metrics, options)
        await record(metrics, options)
        await metrics.record_error("RAG_PIPELINE", "boom")

        snapshot = metrics.snapshot()
        assert snapshot.errors == 1
        assert snapshot.error_rate == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_search_does_not_touch_request_aggregates(self, metrics):
        from art_rag.models.query import SearchResponse

        await metrics.record_search("monet", None, SearchResponse(query="monet"), 5.0)
        snapshot = metrics.snapshot()
        assert snapshot.total_searches == 1
        assert snapshot.total_requests == 0

    @pytest.mark.asyncio
    async def test_hourly_bucket_uses_utc_event_hour(self, event_writer, options):
        metrics = MetricsAggregator(writer=event_writer, clock=fixed_clock(hour=17))
        await record(metrics, options)
        distribution = metrics.hourly_distribution()
        assert distribution[17] == 1
        assert sum(distribution) == 1

    @pytest.mark.asyncio
    async def test_disabled_aggregator_records_nothing(self, event_writer, options, log_dir):
        metrics = MetricsAggregator(writer=event_writer, enabled=False)
        await record(metrics, options)
        await metrics.record_error("X", "y")
        assert metrics.snapshot().total_requests == 0
        assert not log_dir.exists()

    def test_concurrent_updates_are_not_lost(self, options):
        """Test aggregate updates from many threads."""
        import asyncio

        metrics = MetricsAggregator(writer=None)

        def worker():
            async def run():
                for _ in range(50):
                    await record(metrics, options, total=10.0)
            asyncio.run(run())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = metrics.snapshot()
        assert snapshot.total_requests == 400
        assert snapshot.cache_misses == 400
        assert snapshot.average_processing_time == pytest.approx(10.0)


class TestTopQuestions:
    """Tests for the question frequency table."""

    @pytest.mark.asyncio
    async def test_keyed_by_lowercased_question(self, metrics, options):
        await record(metrics, options, question="Who is Monet?")
        await record(metrics, options, question="WHO IS MONET?")

        top = metrics.top_questions()
        assert [(q.question, q.count) for q in top] == [("who is monet?", 2)]

    @pytest.mark.asyncio
    async def test_sorted_by_count_then_first_seen(self, metrics, options):
        for question in ["b", "a", "c", "a", "c", "d"]:
            await record(metrics, options, question=question)

        top = metrics.top_questions(limit=3)
        assert [q.question for q in top] == ["a", "c", "b"]

    @pytest.mark.asyncio
    async def test_default_limit_from_constructor(self, event_writer, options):
        metrics = MetricsAggregator(writer=event_writer, top_questions_limit=2)
        for question in ["a", "b", "c"]:
            await record(metrics, options, question=question)

        assert [q.question for q in metrics.top_questions()] == ["a", "b"]
        data = await metrics.export_snapshot()
        assert len(data["topQuestions"]) == 2


class TestEventLogs:
    """Tests for the structured events written by the aggregator."""

    @pytest.mark.asyncio
    async def test_request_event_shape(self, metrics, options, log_dir):
        await record(metrics, options, question="Who is Monet?", total=42.0)

        lines = (log_dir / "rag_requests.log").read_text().splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["type"] == "rag_request"
        assert event["request"]["question"] == "Who is Monet?"
        assert event["request"]["topK"] == 5
        assert event["response"]["sourcesCount"] == 1
        assert event["timing"]["totalTime"] == 42.0
        assert event["cache"] == {"hit": False, "key": "test:v1:abc"}
        assert event["metadata"]["pipelineId"] == "pipeline_1_abcdefghi"

    @pytest.mark.asyncio
    async def test_error_event_includes_stack(self, metrics, log_dir):
        try:
            raise RuntimeError("vector store down")
        except RuntimeError as e:
            await metrics.record_error("RAG_PIPELINE", str(e), {"pipelineId": "p1"}, error=e)

        event = json.loads((log_dir / "errors.log").read_text().splitlines()[0])
        assert event["kind"] == "RAG_PIPELINE"
        assert event["context"] == {"pipelineId": "p1"}
        assert "RuntimeError: vector store down" in event["stack"]

    @pytest.mark.asyncio
    async def test_export_snapshot(self, metrics, options, log_dir):
        await record(metrics, options, question="Who is Monet?")
        data = await metrics.export_snapshot("export.json")

        assert data["metrics"]["totalRequests"] == 1
        assert data["topQuestions"] == [{"question": "who is monet?", "count": 1}]
        assert len(data["hourlyDistribution"]) == 24
        assert json.loads((log_dir / "export.json").read_text())["metrics"]["totalRequests"] == 1

    @pytest.mark.asyncio
    async def test_prometheus_export(self, metrics, options):
        await record(metrics, options)
        text = metrics.export_prometheus()
        assert "art_rag_requests_total 1" in text
        assert 'art_rag_total_time_ms{quantile="0.5"} 100.0' in text

    @pytest.mark.asyncio
    async def test_reset(self, metrics, options):
        await record(metrics, options)
        metrics.reset()
        assert metrics.snapshot().total_requests == 0
        assert metrics.top_questions() == []
