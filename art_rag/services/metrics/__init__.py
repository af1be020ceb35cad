"""Request metrics aggregation and event logging."""

from art_rag.services.metrics.aggregator import LatencyWindow, MetricsAggregator
from art_rag.services.metrics.event_log import EventLogWriter

__all__ = [
    "EventLogWriter",
    "LatencyWindow",
    "MetricsAggregator",
]
