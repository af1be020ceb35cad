from fastapi import Request, Depends

from art_rag.core.container import ServiceContainer, get_container
from art_rag.services.metrics.aggregator import MetricsAggregator
from art_rag.services.rag.orchestrator import RAGOrchestrator


def get_service_container(request: Request) -> ServiceContainer:
    """Get the service container."""
    # Try getting from app state first (lifespan managed)
    if getattr(request.app.state, "container", None) is not None:
        return request.app.state.container
    # Fallback to global (e.g. if testing without full app)
    return get_container()


def get_orchestrator(
    container: ServiceContainer = Depends(get_service_container)
) -> RAGOrchestrator:
    return container.orchestrator


def get_metrics(
    container: ServiceContainer = Depends(get_service_container)
) -> MetricsAggregator:
    return container.metrics
