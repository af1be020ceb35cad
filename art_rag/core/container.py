"""Dependency injection container for service management.

The container owns every long-lived object of the service: the response
cache store, the metrics aggregator, the retrieval and generation
collaborators and the orchestrator built from them. Request handlers reach
these through the container instead of module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from art_rag.core.errors import ServiceNotInitializedError
from art_rag.core.logging import get_logger

if TYPE_CHECKING:
    from art_rag.core.config import Settings
    from art_rag.core.interfaces import IAnswerGenerator, IDocumentSearcher
    from art_rag.core.vectorstore import VectorStoreManager
    from art_rag.services.metrics.aggregator import MetricsAggregator
    from art_rag.services.rag.orchestrator import RAGOrchestrator
    from art_rag.services.response_cache.store import ResponseCacheStore

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Services already provided through the set_* methods are kept as-is by
    initialize(), so tests can swap in fakes for the vector store and the
    language model and still get a real cache and metrics pipeline.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        result = await container.orchestrator.ask("Who painted ...?")

        await container.shutdown()
    """

    _cache_store: Optional[ResponseCacheStore] = field(default=None, repr=False)
    _metrics: Optional[MetricsAggregator] = field(default=None, repr=False)
    _vector_store_manager: Optional[VectorStoreManager] = field(default=None, repr=False)
    _searcher: Optional[IDocumentSearcher] = field(default=None, repr=False)
    _generator: Optional[IAnswerGenerator] = field(default=None, repr=False)
    _orchestrator: Optional[RAGOrchestrator] = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(self, settings: Settings) -> None:
        """Initialize all services.

        Args:
            settings: Application settings.

        Raises:
            Exception: If any service fails to initialize.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        self._settings = settings
        logger.info("Initializing service container...")

        try:
            # Import here to avoid circular imports
            from art_rag.core.vectorstore import VectorStoreManager
            from art_rag.services.generation import AnswerGenerator, create_chat_model
            from art_rag.services.metrics import EventLogWriter, MetricsAggregator
            from art_rag.services.rag import PipelineConfig, RAGOrchestrator
            from art_rag.services.response_cache import CacheConfig, ResponseCacheStore
            from art_rag.services.response_cache.backends import MemoryBackend, RedisBackend
            from art_rag.services.retrieval import DocumentSearcher

            if self._cache_store is None:
                preferred = RedisBackend(settings.redis_url) if settings.redis_url else None
                self._cache_store = ResponseCacheStore(
                    preferred=preferred,
                    fallback=MemoryBackend(),
                    config=CacheConfig(ttl=settings.cache_ttl, prefix=settings.cache_prefix),
                )
            await self._cache_store.connect()
            logger.info(f"Response cache initialized ({self._cache_store.backend_kind})")

            if self._metrics is None:
                self._metrics = MetricsAggregator(
                    writer=EventLogWriter(settings.metrics_log_dir, settings.metrics_max_log_bytes),
                    enabled=settings.metrics_enabled,
                    top_questions_limit=settings.metrics_top_questions,
                )
            logger.info("Metrics aggregator initialized")

            if self._searcher is None:
                self._vector_store_manager = VectorStoreManager(settings)
                await self._vector_store_manager.initialize()
                self._searcher = DocumentSearcher(self._vector_store_manager)
            logger.info("Document searcher initialized")

            if self._generator is None:
                self._generator = AnswerGenerator(create_chat_model(settings), settings.llm_model)
            logger.info(f"Answer generator initialized ({self._generator.model_name})")

            if self._orchestrator is None:
                self._orchestrator = RAGOrchestrator(
                    searcher=self._searcher,
                    generator=self._generator,
                    cache=self._cache_store,
                    metrics=self._metrics,
                    config=PipelineConfig.from_settings(settings),
                )

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        if self._cache_store:
            try:
                await self._cache_store.disconnect()
                logger.info("Response cache disconnected")
            except Exception as e:
                logger.error(f"Error disconnecting cache: {e}")

        if self._vector_store_manager:
            try:
                await self._vector_store_manager.close()
            except Exception as e:
                logger.error(f"Error closing vector store: {e}")

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def cache_store(self) -> ResponseCacheStore:
        if self._cache_store is None:
            raise ServiceNotInitializedError("cache_store")
        return self._cache_store

    @property
    def metrics(self) -> MetricsAggregator:
        if self._metrics is None:
            raise ServiceNotInitializedError("metrics")
        return self._metrics

    @property
    def searcher(self) -> IDocumentSearcher:
        if self._searcher is None:
            raise ServiceNotInitializedError("searcher")
        return self._searcher

    @property
    def generator(self) -> IAnswerGenerator:
        if self._generator is None:
            raise ServiceNotInitializedError("generator")
        return self._generator

    @property
    def orchestrator(self) -> RAGOrchestrator:
        if self._orchestrator is None:
            raise ServiceNotInitializedError("orchestrator")
        return self._orchestrator

    def set_cache_store(self, store: ResponseCacheStore) -> None:
        """Set the cache store (for testing)."""
        self._cache_store = store

    def set_metrics(self, metrics: MetricsAggregator) -> None:
        """Set the metrics aggregator (for testing)."""
        self._metrics = metrics

    def set_searcher(self, searcher: IDocumentSearcher) -> None:
        """Set the document searcher (for testing)."""
        self._searcher = searcher

    def set_generator(self, generator: IAnswerGenerator) -> None:
        """Set the answer generator (for testing)."""
        self._generator = generator

    def set_orchestrator(self, orchestrator: RAGOrchestrator) -> None:
        """Set the orchestrator (for testing)."""
        self._orchestrator = orchestrator


# Module-level container instance
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global service container instance.

    Raises:
        RuntimeError: If the container hasn't been created yet.
    """
    if _container is None:
        raise RuntimeError(
            "Service container not created. Call set_container() first "
            "or use the FastAPI app.state.container."
        )
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    """Set the global service container instance."""
    global _container
    _container = container


def create_container() -> ServiceContainer:
    """Create a new, isolated service container instance."""
    return ServiceContainer()
