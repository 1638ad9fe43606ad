"""
Prompt templates for the secondary scorer.

The user prompt carries the heuristic extraction and a bounded excerpt of
the source text; the model must answer with a single JSON object.
"""

import json
from typing import Dict, List, Optional

from ..config import settings
from .schemas import EscalationRequest


# ============================================================================
# SYSTEM PROMPT
# ============================================================================

SYSTEM_PROMPT = (
    "You are an expert at identifying promotional content and coupon codes "
    "in video descriptions and transcripts. Respond only with valid JSON."
)


# ============================================================================
# USER PROMPT
# ============================================================================

USER_PROMPT_TEMPLATE = """Analyze this content for promotional/coupon codes and affiliate marketing.

EXTRACTED DATA:
- Codes found: {codes}
- Code confidence: {code_confidence}
- Percentage discounts: {percent_off}
- Flat discounts: {flat_discount}
- Links: {links}
- Current confidence: {confidence}

SAMPLE TEXT (first {excerpt_chars} chars):
"{excerpt}"

TASK:
1. Determine if the extracted codes are likely valid promotional/coupon codes
2. Assess if this appears to be sponsored/promotional content
3. Rate confidence from 0.0 to 1.0 where:
   - 0.8+ = Definitely promotional with valid codes
   - 0.5-0.8 = Likely promotional, codes need verification
   - 0.2-0.5 = Possibly promotional, weak signals
   - 0.0-0.2 = Not promotional content

RESPOND WITH JSON ONLY:
{{
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation",
  "validCodes": ["list of codes that seem valid"],
  "isPromotional": true/false,
  "recommendation": "accept/review/reject"
}}"""


def excerpt(text: Optional[str], max_chars: Optional[int] = None) -> str:
    """Leading slice of the source text sent to the secondary scorer."""
    if max_chars is None:
        max_chars = settings.escalation_excerpt_chars
    if not text:
        return ""
    return text[:max_chars]


def build_user_prompt(request: EscalationRequest, excerpt_chars: Optional[int] = None) -> str:
    """
    Render the user prompt for one escalation.

    Args:
        request: Heuristic outcome and text excerpt
        excerpt_chars: Excerpt bound quoted in the prompt (default: settings)

    Returns:
        Prompt text
    """
    if excerpt_chars is None:
        excerpt_chars = settings.escalation_excerpt_chars

    cs = request.candidate_set
    return USER_PROMPT_TEMPLATE.format(
        codes=json.dumps(sorted(cs.codes)),
        code_confidence=json.dumps(cs.code_confidence, sort_keys=True),
        percent_off=json.dumps(cs.sorted_percent_off()),
        flat_discount=json.dumps(cs.sorted_flat_discount()),
        links=json.dumps(sorted(cs.links)),
        confidence=round(request.confidence, 4),
        excerpt_chars=excerpt_chars,
        excerpt=excerpt(request.text_excerpt, excerpt_chars) or "N/A",
    )


def build_messages(request: EscalationRequest) -> List[Dict[str, str]]:
    """Chat messages for OpenAI-compatible and Ollama chat endpoints."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(request)},
    ]
