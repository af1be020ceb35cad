"""Context assembly for answer generation."""

from typing import Sequence

from art_rag.core.interfaces import IAnswerGenerator
from art_rag.models.query import RetrievedDocument

TRUNCATION_MARKER = "... [truncated]"


def truncate_context(context: str, char_limit: int) -> str:
    """Truncate context to character limit.

    Args:
        context: The context string.
        char_limit: Maximum characters kept from the context. 0 disables
            truncation.

    Returns:
        The context unchanged, or its first `char_limit` characters followed
        by TRUNCATION_MARKER.
    """
    if char_limit and len(context) > char_limit:
        return context[:char_limit] + TRUNCATION_MARKER
    return context


def build_context(
    generator: IAnswerGenerator,
    documents: Sequence[RetrievedDocument],
    char_limit: int,
) -> str:
    return truncate_context(generator.format_context(documents), char_limit)
