from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from editing_desk.services.errors import ConfigurationError, TransportFailure
from editing_desk.services.prompt_builder import AnalysisPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """What one completed call returned, before any classification."""

    text: Optional[str] = None
    finish_reason: Optional[str] = None
    block_reason: Optional[str] = None


class Transport(Protocol):
    def generate(self, payload: AnalysisPayload) -> RawResponse:
        """One outbound call. Raises TransportFailure on any transport-level problem."""
        ...


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    name = getattr(value, "value", value)
    name = str(name).strip().upper()
    return name or None


def to_raw_response(resp: Any) -> RawResponse:
    """
    Extract candidates[0] text / finish reason and the prompt block reason
    from a google-genai GenerateContentResponse.
    """
    feedback = getattr(resp, "prompt_feedback", None)
    block_reason = _enum_name(getattr(feedback, "block_reason", None)) if feedback else None

    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return RawResponse(text=None, finish_reason=None, block_reason=block_reason)

    first = candidates[0]
    finish_reason = _enum_name(getattr(first, "finish_reason", None))
    content = getattr(first, "content", None)
    parts = (getattr(content, "parts", None) or []) if content else []

    texts = [p.text for p in parts if getattr(p, "text", None) and not getattr(p, "thought", False)]
    text = "".join(texts) if texts else None
    return RawResponse(text=text, finish_reason=finish_reason, block_reason=block_reason)


class GeminiTransport:
    def __init__(self, api_key: Optional[str], timeout_s: float = 120.0):
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._client = None  # lazy: the app starts without a key

    def _get_client(self):
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is missing. Add it to .env")

        from google import genai
        from google.genai import types

        self._client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout_s * 1000)),
        )
        return self._client

    def generate(self, payload: AnalysisPayload) -> RawResponse:
        from google.genai import errors

        client = self._get_client()
        try:
            resp = client.models.generate_content(
                model=payload.model,
                contents=payload.contents(),
                config=payload.config(),
            )
        except errors.APIError as e:
            raise TransportFailure(str(e.message or e), status=e.code) from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"{type(e).__name__}: {e}") from e

        return to_raw_response(resp)
