from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from editing_desk.services.errors import EmptyResponse, PipelineError, SafetyBlocked, TransportFailure
from editing_desk.services.prompt_builder import AnalysisPayload
from editing_desk.services.transport import RawResponse, Transport

logger = logging.getLogger(__name__)

SAFETY_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 1000
    multiplier: float = 2.0

    def delay_ms(self, attempt: int) -> float:
        """Wait after the 0-indexed `attempt` failed: 1000, 2000, ... with the defaults."""
        return self.base_delay_ms * (self.multiplier ** attempt)


def classify(raw: RawResponse) -> str:
    """
    Text of a completed call, or raise:
    - SafetyBlocked when the prompt or the candidate was filtered (final),
    - EmptyResponse when there is nothing to parse (retryable).
    """
    if raw.block_reason or (raw.finish_reason or "") in SAFETY_FINISH_REASONS:
        raise SafetyBlocked(f"block_reason={raw.block_reason} finish_reason={raw.finish_reason}")
    if not (raw.text or "").strip():
        raise EmptyResponse(f"no text in response (finish_reason={raw.finish_reason})")
    return raw.text


class RetryingSender:
    def __init__(
        self,
        transport: Transport,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def send(self, payload: AnalysisPayload) -> str:
        max_attempts = max(1, int(self.policy.max_attempts))
        last_error: Optional[PipelineError] = None

        for attempt in range(max_attempts):
            try:
                raw = self.transport.generate(payload)
                text = classify(raw)
                if attempt:
                    logger.info("Attempt %d succeeded after earlier failures", attempt + 1)
                return text
            except SafetyBlocked as e:
                e.attempts = attempt + 1
                logger.warning("Response blocked by safety filter on attempt %d: %s", attempt + 1, e.detail)
                raise
            except (TransportFailure, EmptyResponse) as e:
                last_error = e
                logger.warning("Attempt %d/%d failed: %s", attempt + 1, max_attempts, e)

            if attempt < max_attempts - 1:
                delay = self.policy.delay_ms(attempt)
                logger.info("Retrying in %.0f ms", delay)
                self._sleep(delay / 1000.0)

        last_error.attempts = max_attempts
        logger.error("Analysis failed after %d attempts: %s", max_attempts, last_error)
        raise last_error
