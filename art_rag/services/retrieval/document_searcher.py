"""Document search over the art collection vector index."""

from typing import Any, Dict, List, Optional, Tuple

from langchain_core.documents import Document as LangchainDocument

from art_rag.core.errors import RetrievalError
from art_rag.core.interfaces import IVectorStoreManager
from art_rag.core.logging import get_logger
from art_rag.models.query import RetrievedDocument
from art_rag.models.status import IndexStats

logger = get_logger(__name__)

# Metadata fields that accept equality filters
FILTERABLE_FIELDS = ("artist", "medium", "period", "country")


def build_metadata_filter(filters: Dict[str, Any]) -> Dict[str, Any]:
    """Translate caller filters to vector store `$eq` clauses.

    Unsupported fields and empty values are dropped.
    """
    clauses = {}
    for field in FILTERABLE_FIELDS:
        value = filters.get(field)
        if value:
            clauses[field] = {"$eq": value}

    ignored = set(filters) - set(FILTERABLE_FIELDS)
    if ignored:
        logger.debug(f"Ignoring unsupported filters: {sorted(ignored)}")
    return clauses


def to_retrieved_document(document: LangchainDocument, score: float) -> RetrievedDocument:
    metadata = dict(document.metadata or {})
    doc_id = document.id or metadata.get("id") or ""
    return RetrievedDocument(
        id=str(doc_id),
        score=float(score),
        metadata=metadata,
        content=document.page_content or "",
    )


class DocumentSearcher:
    """Threshold and filter search over the vector store."""

    def __init__(self, manager: IVectorStoreManager):
        self.manager = manager

    async def _query(
        self,
        query: str,
        top_k: int,
        filter_dict: Optional[Dict[str, Any]],
    ) -> List[Tuple[LangchainDocument, float]]:
        try:
            return await self.manager.search(query, k=top_k, filter_dict=filter_dict)
        except Exception as e:
            logger.error(f"Search failed: {e}")
            raise RetrievalError(f"Document search failed: {e}", query=query) from e

    async def search(self, query: str, top_k: int = 5, score_threshold: float = 0.6) -> List[RetrievedDocument]:
        """Nearest passages scoring at least `score_threshold`, best first."""
        results = await self._query(query, top_k, None)
        documents = [
            to_retrieved_document(document, score)
            for document, score in results
            if score >= score_threshold
        ]
        documents.sort(key=lambda document: document.score, reverse=True)
        logger.info(f"Found {len(documents)} documents above threshold {score_threshold}")
        return documents

    async def search_with_filters(
        self,
        query: str,
        filters: Dict[str, Any],
        top_k: int = 5,
    ) -> List[RetrievedDocument]:
        """Nearest passages matching metadata filters. No score threshold applies."""
        filter_dict = build_metadata_filter(filters)
        results = await self._query(query, top_k, filter_dict or None)
        documents = [to_retrieved_document(document, score) for document, score in results]
        documents.sort(key=lambda document: document.score, reverse=True)
        logger.info(f"Found {len(documents)} filtered documents")
        return documents

    async def index_stats(self) -> IndexStats:
        """Raises RetrievalError when the index cannot be inspected."""
        try:
            stats = await self.manager.get_collection_stats()
        except Exception as e:
            raise RetrievalError(f"Failed to read index stats: {e}") from e

        count = int(stats.get("document_count", 0))
        return IndexStats(
            total_vector_count=count,
            dimension=int(stats.get("vector_dimensions", 0)),
            namespaces={stats.get("table", "default"): {"vectorCount": count}},
        )
