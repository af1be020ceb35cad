"""Protocol definitions for the pipeline collaborators.

The orchestrator depends only on these interfaces so tests can substitute
in-memory fakes for the vector store and the language model.
"""

from typing import Protocol, Optional, List, Dict, Any, Sequence, Tuple, runtime_checkable
from langchain_core.documents import Document as LangchainDocument

from art_rag.models.query import GenerationResult, RetrievedDocument
from art_rag.models.status import IndexStats


@runtime_checkable
class IVectorStoreManager(Protocol):
    """Interface for vector store operations."""

    async def search(
        self,
        query: str,
        k: int = 5,
        filter_dict: Optional[Dict[str, Any]] = None,
    ) -> List[Tuple[LangchainDocument, float]]:
        """Search for similar documents with relevance scores."""
        ...

    async def get_collection_stats(self) -> Dict[str, Any]:
        """Get vector store statistics."""
        ...


@runtime_checkable
class IDocumentSearcher(Protocol):
    """Retrieval collaborator used by the orchestrator."""

    async def search(self, query: str, top_k: int, score_threshold: float) -> List[RetrievedDocument]:
        """Passages scoring at least score_threshold, best first."""
        ...

    async def search_with_filters(self, query: str, filters: Dict[str, Any], top_k: int) -> List[RetrievedDocument]:
        """Passages matching metadata filters, without threshold filtering."""
        ...

    async def index_stats(self) -> IndexStats:
        """Index size and dimensionality."""
        ...


@runtime_checkable
class IAnswerGenerator(Protocol):
    """Generation collaborator used by the orchestrator."""

    model_name: str

    def format_context(self, documents: Sequence[RetrievedDocument]) -> str:
        """Render documents into the prompt context."""
        ...

    async def generate_answer(self, context: str, question: str) -> GenerationResult:
        """Generate an answer for the question from the context."""
        ...

    async def test_connection(self) -> bool:
        """Liveness probe."""
        ...
