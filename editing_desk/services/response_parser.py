from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from editing_desk.schemas.analysis import AnalysisResult
from editing_desk.services.errors import MalformedJson
from editing_desk.services.markup import extract_corrections

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```json|```", re.I)


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_analysis(raw_text: str) -> AnalysisResult:
    """
    Strip code fences → json.loads → validate against the analysis schema.
    Any failure is MalformedJson carrying `raw_text` untouched.
    """
    cleaned = strip_fences(raw_text)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Model returned invalid JSON (%s). First 400 chars: %r", e, (raw_text or "")[:400])
        raise MalformedJson(raw_text, reason=f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        logger.error("Model returned JSON %s instead of an object", type(data).__name__)
        raise MalformedJson(raw_text, reason=f"expected a JSON object, got {type(data).__name__}")

    try:
        result = AnalysisResult.model_validate(data)
    except ValidationError as e:
        logger.error("Model JSON does not match the analysis schema: %s", e.errors()[:3])
        raise MalformedJson(raw_text, reason=f"schema mismatch: {e.error_count()} error(s)") from e

    if not result.corrections:
        recovered = extract_corrections(result.annotated_text)
        if recovered:
            result = result.model_copy(update={"corrections": recovered})

    return result
