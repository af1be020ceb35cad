"""Vector store management for the art collection using PostgreSQL/pgvector."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from langchain_core.documents import Document as LangchainDocument
from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings
from langchain_postgres import PGEngine, PGVectorStore
from sqlalchemy import create_engine, text
from sqlalchemy.exc import ProgrammingError

from art_rag.core.config import Settings
from art_rag.core.logging import get_logger

logger = get_logger(__name__)


class VectorStoreManager:
    """Manages vector store operations with PostgreSQL/pgvector."""

    def __init__(self, settings: Settings):
        """Initialize vector store manager."""
        self.settings = settings
        self.embeddings: Optional[Embeddings] = None
        self.vector_store: Optional[PGVectorStore] = None
        self.executor = ThreadPoolExecutor(max_workers=settings.search_workers)
        # SQLAlchemy engine for direct SQL access (stats)
        self._sync_engine = None
        # PGEngine for langchain-postgres connection pool
        self._pg_engine: Optional[PGEngine] = None

    def _build_connection_string(self) -> str:
        """Build a psycopg PostgreSQL connection string from settings."""
        settings = self.settings
        if settings.database_url:
            url = settings.database_url
            if "+asyncpg" in url:
                url = url.replace("+asyncpg", "+psycopg")
            elif "postgresql://" in url and "+psycopg" not in url:
                url = url.replace("postgresql://", "postgresql+psycopg://")
            return url

        password = settings.postgres_password or ""
        return (
            f"postgresql+psycopg://{settings.postgres_user}:{password}"
            f"@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}"
        )

    async def initialize(self) -> None:
        """Initialize embeddings and vector store."""
        try:
            self.embeddings = self._create_embeddings()
            logger.info("Embeddings initialized")

            self.vector_store = await asyncio.to_thread(self._create_vector_store)
        except Exception as e:
            logger.error(f"Failed to initialize vector store: {e}")
            raise

    def _create_embeddings(self) -> Embeddings:
        """Create embeddings served by the OpenAI-compatible endpoint."""
        settings = self.settings
        logger.info(f"Using embeddings: {settings.embedding_model}")
        return OpenAIEmbeddings(
            model=settings.embedding_model,
            base_url=settings.embedding_base_url or settings.llm_base_url,
            api_key=settings.llm_api_key,
            # Non-OpenAI servers expect raw strings, not tiktoken ids
            check_embedding_ctx_length=False,
        )

    def _create_vector_store(self) -> PGVectorStore:
        """Create PGVectorStore instance using langchain-postgres factory method."""
        table_name = self.settings.pgvector_table_name
        connection_string = self._build_connection_string()

        self._sync_engine = create_engine(connection_string)
        self._ensure_pgvector_extension()

        self._pg_engine = PGEngine.from_connection_string(url=connection_string)

        try:
            self._pg_engine.init_vectorstore_table(
                table_name=table_name,
                vector_size=self.settings.embedding_dimensions,
            )
            logger.info(f"Created vectorstore table: {table_name}")
        except ProgrammingError:
            logger.info(f"Vectorstore table already exists: {table_name}")

        vector_store = PGVectorStore.create_sync(
            engine=self._pg_engine,
            table_name=table_name,
            embedding_service=self.embeddings,
        )
        logger.info(f"PGVectorStore initialized with table: {table_name}")
        return vector_store

    def _ensure_pgvector_extension(self) -> None:
        """Ensure the pgvector extension is enabled in the database."""
        try:
            with self._sync_engine.connect() as conn:
                conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
                conn.commit()
        except Exception as e:
            logger.warning(f"Could not ensure pgvector extension (may already exist): {e}")

    async def search(
        self,
        query: str,
        k: int = 5,
        filter_dict: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[LangchainDocument, float]]:
        """Similarity search returning normalized relevance scores (higher is better)."""
        if self.vector_store is None:
            raise RuntimeError("Vector store not initialized")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor,
            lambda: self.vector_store.similarity_search_with_relevance_scores(
                query,
                k=k,
                filter=filter_dict,
            )
        )

    async def get_collection_stats(self) -> Dict[str, Any]:
        """Count stored vectors.

        Raises:
            RuntimeError: If the store has not been initialized.
        """
        if self._sync_engine is None:
            raise RuntimeError("Vector store not initialized")

        def _count() -> int:
            with self._sync_engine.connect() as conn:
                result = conn.execute(
                    text(f"SELECT COUNT(*) FROM {self.settings.pgvector_table_name}")
                )
                return int(result.scalar() or 0)

        count = await asyncio.to_thread(_count)
        return {
            "table": self.settings.pgvector_table_name,
            "document_count": count,
            "vector_dimensions": self.settings.embedding_dimensions,
        }

    async def close(self) -> None:
        """Close vector store connections."""
        if self._pg_engine:
            try:
                await self._pg_engine.close()
                logger.info("PGEngine closed")
            except Exception as e:
                logger.warning(f"Error closing PGEngine: {e}")

        if self._sync_engine:
            self._sync_engine.dispose()
            logger.info("SQLAlchemy engine disposed")

        self.executor.shutdown(wait=True)
        logger.info("Vector store closed")
