from art_rag.services.retrieval.document_searcher import (
    FILTERABLE_FIELDS,
    DocumentSearcher,
    build_metadata_filter,
)

__all__ = ["DocumentSearcher", "FILTERABLE_FIELDS", "build_metadata_filter"]
