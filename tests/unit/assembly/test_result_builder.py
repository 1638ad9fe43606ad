"""
Unit tests for the Result Assembler.
"""

import pytest
from pydantic import ValidationError

from smartfetch.assembly import assemble, empty_result
from smartfetch.models import ExtractionStatus, SourceTier
from smartfetch.models.results import ScoreBreakdown
from smartfetch.version import get_current_pipeline_version


@pytest.fixture
def candidate_set(set_factory, code_factory):
    return set_factory(
        codes=[code_factory("SAVE20"), code_factory("TECH15", SourceTier.MEDIUM)],
        percent_off=[20.0, 15.0],
        flat_discount=[10.0],
        links=["https://shop.example.com/promo", "https://a.example.com"],
    )


@pytest.mark.unit
class TestAssemble:
    """Test assemble()."""

    def test_fields_copied(self, candidate_set):
        result = assemble("vid-1", candidate_set, 0.797, ExtractionStatus.ACCEPTED)

        assert result.source_id == "vid-1"
        assert result.candidate_set == candidate_set
        assert result.confidence == 0.797
        assert result.status == ExtractionStatus.ACCEPTED
        assert result.enhanced_by_fallback is False
        assert result.original_confidence is None
        assert result.pipeline_version == get_current_pipeline_version()

    def test_escalation_audit(self, candidate_set):
        result = assemble(
            "vid-2",
            candidate_set,
            0.8,
            ExtractionStatus.ACCEPTED,
            enhanced_by_fallback=True,
            original_confidence=0.2,
            fallback_reasoning="Explicit sponsor segment",
            fallback_recommendation="accept",
        )

        assert result.enhanced_by_fallback is True
        assert result.original_confidence == 0.2
        assert result.fallback_recommendation == "accept"

    def test_to_record_sorted(self, candidate_set):
        record = assemble("vid-1", candidate_set, 0.5, ExtractionStatus.NEEDS_REVIEW).to_record()

        assert record["codes"] == ["SAVE20", "TECH15"]
        assert record["code_confidence"] == {"SAVE20": 0.9, "TECH15": 0.6}
        assert record["percent_off"] == [20.0, 15.0]
        assert record["flat_discount"] == [10.0]
        assert record["links"] == ["https://a.example.com", "https://shop.example.com/promo"]
        assert record["status"] == "needs_review"

    def test_score_breakdown_not_persisted(self, candidate_set):
        breakdown = ScoreBreakdown(code_score=0.5, confidence=0.5)
        result = assemble(
            "vid-1", candidate_set, 0.5, ExtractionStatus.NEEDS_REVIEW, score_breakdown=breakdown
        )

        assert result.score_breakdown == breakdown
        assert "score_breakdown" not in result.model_dump()
        assert "score_breakdown" not in result.to_record()

    def test_result_is_frozen(self, candidate_set):
        result = assemble("vid-1", candidate_set, 0.5, ExtractionStatus.NEEDS_REVIEW)

        with pytest.raises(ValidationError):
            result.confidence = 0.9

    def test_confidence_out_of_range(self, candidate_set):
        with pytest.raises(ValidationError):
            assemble("vid-1", candidate_set, 1.2, ExtractionStatus.ACCEPTED)


@pytest.mark.unit
class TestEmptyResult:
    """Test empty_result()."""

    def test_empty(self):
        result = empty_result("vid-empty")

        assert result.confidence == 0.0
        assert result.status == ExtractionStatus.REJECTED
        assert result.codes == []
        assert result.candidate_set.is_empty()
        assert result.score_breakdown == ScoreBreakdown()
