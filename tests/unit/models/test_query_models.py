"""Tests for request, response and envelope models."""

import pytest
from pydantic import ValidationError

from art_rag.models.query import (
    QuestionRequest,
    RequestOptions,
    ResponseEnvelope,
    RetrievedDocument,
    SourceSummary,
)

from conftest import make_envelope


class TestRequestOptions:

    def test_resolve_fills_defaults(self):
        resolved = RequestOptions(top_k=3).resolve(5, 0.6, "gemma2:2b")
        assert resolved.top_k == 3
        assert resolved.score_threshold == 0.6
        assert resolved.filters == {}
        assert resolved.model == "gemma2:2b"

    def test_camel_case_aliases(self):
        options = RequestOptions.model_validate({"topK": 7, "scoreThreshold": 0.3})
        assert options.top_k == 7
        assert options.score_threshold == 0.3

    @pytest.mark.parametrize("top_k", [0, 21, 500])
    def test_top_k_bounds(self, top_k):
        with pytest.raises(ValidationError):
            RequestOptions(top_k=top_k)

    def test_top_k_upper_bound_accepted(self):
        assert RequestOptions(top_k=20).top_k == 20

    def test_out_of_range_threshold_rejected(self):
        with pytest.raises(ValidationError):
            RequestOptions(score_threshold=1.2)


class TestQuestionRequest:

    def test_to_options(self):
        request = QuestionRequest.model_validate({
            "question": "Who is Monet?",
            "topK": 2,
            "filters": {"artist": "Claude Monet"},
        })
        options = request.to_options()
        assert options.top_k == 2
        assert options.filters == {"artist": "Claude Monet"}
        assert options.model is None

    @pytest.mark.parametrize("body", [
        {"question": ""},
        {"question": "q", "topK": 0},
        {"question": "q", "scoreThreshold": -0.1},
        {"question": "q", "filters": "medium=oil"},
    ])
    def test_invalid_bodies(self, body):
        with pytest.raises(ValidationError):
            QuestionRequest.model_validate(body)


class TestEnvelope:

    def test_source_summary_projection(self):
        document = RetrievedDocument(
            id="v-1",
            score=0.88,
            metadata={"title": "Shrimp", "artist": "Qi Baishi", "accession_number": "2001.1", "chunk_index": "2"},
            content="...",
        )
        summary = SourceSummary.from_document(document)
        assert summary.accession_number == "2001.1"
        assert summary.chunk_index == 2
        assert summary.model_dump(by_alias=True)["accessionNumber"] == "2001.1"

    def test_envelope_is_immutable(self):
        envelope = make_envelope()
        with pytest.raises(ValidationError):
            envelope.answer = "changed"

    def test_served_from_cache_copies(self):
        envelope = make_envelope()
        served = envelope.served_from_cache("pipeline_2_zzzzzzzzz", 1.5)

        assert served.metadata.from_cache is True
        assert served.metadata.cache_time == 1.5
        assert served.metadata.pipeline_id == "pipeline_2_zzzzzzzzz"
        assert envelope.metadata.from_cache is False
        assert served.sources == envelope.sources

    def test_json_round_trip_by_alias(self):
        envelope = make_envelope()
        data = envelope.model_dump(mode="json", by_alias=True)
        assert data["metadata"]["fromCache"] is False
        assert ResponseEnvelope.model_validate(data) == envelope
