"""Tests for context assembly and truncation."""

from art_rag.services.generation.answer_generator import NO_DOCUMENTS_CONTEXT
from art_rag.services.rag.context_builder import TRUNCATION_MARKER, build_context, truncate_context

from conftest import make_document


def test_short_context_unchanged():
    assert truncate_context("Water Lilies", 100) == "Water Lilies"


def test_context_at_limit_unchanged():
    assert truncate_context("x" * 10, 10) == "x" * 10


def test_long_context_truncated_with_marker():
    result = truncate_context("abcdefghij", 4)
    assert result == "abcd" + TRUNCATION_MARKER
    assert len(result) == 4 + len(TRUNCATION_MARKER)


def test_zero_limit_disables_truncation():
    assert truncate_context("x" * 5000, 0) == "x" * 5000


def test_build_context_without_documents(generator):
    assert build_context(generator, [], 4000) == NO_DOCUMENTS_CONTEXT


def test_build_context_numbers_documents(generator):
    context = build_context(
        generator,
        [make_document("a", 0.9, title="Shrimp"), make_document("b", 0.8, title="Horses")],
        4000,
    )
    assert context.startswith("Document 1:\n- Title: Shrimp")
    assert "\n\nDocument 2:\n- Title: Horses" in context
    assert context.endswith("---")
