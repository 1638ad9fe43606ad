"""
Validation of secondary scorer output.

Stages:
1. Strip markdown code fences
2. JSON parse
3. Confidence must be a number in [0, 1]
4. Schema validation (SecondaryAssessment) with lenient optional fields

Any failure raises EscalationParseError; the heuristic result is then kept.
"""

import json
import re
from typing import Optional

import structlog
from pydantic import ValidationError

from ..exceptions import EscalationParseError
from .schemas import SecondaryAssessment


logger = structlog.get_logger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL | re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """
    Remove a surrounding ```json ... ``` fence, if present.

    Examples:
        >>> strip_code_fences('```json\\n{"confidence": 0.5}\\n```')
        '{"confidence": 0.5}'
    """
    cleaned = text.strip()
    match = _FENCE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


def parse_secondary_response(
    response_text: Optional[str], source_id: Optional[str] = None
) -> SecondaryAssessment:
    """
    Parse and validate raw secondary scorer output.

    Args:
        response_text: Raw model output
        source_id: For error context

    Returns:
        SecondaryAssessment

    Raises:
        EscalationParseError: Empty output, invalid JSON, or bad confidence
    """
    if not isinstance(response_text, str) or not response_text.strip():
        raise EscalationParseError("empty secondary scorer response", source_id=source_id)

    cleaned = strip_code_fences(response_text)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise EscalationParseError(f"invalid JSON: {e}", source_id=source_id) from e

    if not isinstance(data, dict):
        raise EscalationParseError("response is not a JSON object", source_id=source_id)

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise EscalationParseError(
            f"invalid confidence value: {confidence!r}", source_id=source_id
        )
    if not 0.0 <= confidence <= 1.0:
        raise EscalationParseError(
            f"confidence out of range: {confidence!r}", source_id=source_id
        )

    try:
        assessment = SecondaryAssessment.model_validate({**data, "raw_response": response_text})
    except ValidationError as e:
        raise EscalationParseError(f"schema validation failed: {e}", source_id=source_id) from e

    logger.debug(
        "secondary_response_parsed",
        source_id=source_id,
        confidence=assessment.confidence,
        valid_codes=len(assessment.valid_codes),
        recommendation=assessment.recommendation,
    )

    return assessment
