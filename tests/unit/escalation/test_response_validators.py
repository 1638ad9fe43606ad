"""
Unit tests for secondary scorer response validation.
"""

import json

import pytest

from smartfetch.escalation import parse_secondary_response, strip_code_fences
from smartfetch.exceptions import EscalationParseError


VALID = {
    "confidence": 0.82,
    "reasoning": "Sponsor segment with explicit code",
    "validCodes": ["SAVE20"],
    "isPromotional": True,
    "recommendation": "accept",
}


@pytest.mark.unit
class TestStripCodeFences:
    """Test markdown fence removal."""

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


@pytest.mark.unit
class TestParseSecondaryResponse:
    """Test parsing and validation stages."""

    def test_valid_response(self):
        assessment = parse_secondary_response(json.dumps(VALID))

        assert assessment.confidence == 0.82
        assert assessment.valid_codes == ["SAVE20"]
        assert assessment.is_promotional is True
        assert assessment.recommendation == "accept"

    def test_fenced_response(self):
        assessment = parse_secondary_response("```json\n" + json.dumps(VALID) + "\n```")

        assert assessment.confidence == 0.82

    def test_integer_confidence(self):
        assert parse_secondary_response('{"confidence": 1}').confidence == 1.0

    def test_optional_fields_defaulted(self):
        assessment = parse_secondary_response('{"confidence": 0.3}')

        assert assessment.reasoning == "No reasoning provided"
        assert assessment.valid_codes == []
        assert assessment.is_promotional is False
        assert assessment.recommendation == "review"

    def test_lenient_optional_fields(self):
        assessment = parse_secondary_response(
            json.dumps({"confidence": 0.5, "validCodes": "SAVE20", "recommendation": "ACCEPT"})
        )

        assert assessment.valid_codes == []
        assert assessment.recommendation == "accept"

    def test_unknown_recommendation(self):
        assessment = parse_secondary_response('{"confidence": 0.5, "recommendation": "maybe"}')

        assert assessment.recommendation == "review"

    def test_raw_response_kept_but_not_dumped(self):
        text = '{"confidence": 0.5}'
        assessment = parse_secondary_response(text)

        assert assessment.raw_response == text
        assert "raw_response" not in assessment.model_dump()

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "   ",
            "not json at all",
            "[0.5]",
            '{"reasoning": "no confidence"}',
            '{"confidence": "0.8"}',
            '{"confidence": true}',
            '{"confidence": 1.5}',
            '{"confidence": -0.1}',
            '{"confidence": NaN}',
        ],
    )
    def test_parse_failures(self, text):
        with pytest.raises(EscalationParseError):
            parse_secondary_response(text, source_id="vid-1")

    def test_parse_error_carries_source_id(self):
        with pytest.raises(EscalationParseError) as exc_info:
            parse_secondary_response("nope", source_id="vid-1")

        assert exc_info.value.source_id == "vid-1"
        assert exc_info.value.retryable is True
