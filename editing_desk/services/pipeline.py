from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from editing_desk.schemas.analysis import AnalysisResult
from editing_desk.services.prompt_builder import AnalysisRequest, build_payload
from editing_desk.services.response_parser import parse_analysis
from editing_desk.services.retry import RetryingSender, RetryPolicy
from editing_desk.services.transport import GeminiTransport, Transport

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    model: str
    gemini_api_key: Optional[str] = None
    temperature: float = 0.4
    max_output_tokens: int = 8192
    timeout_s: float = 120.0
    max_attempts: int = 3
    base_delay_ms: int = 1000
    multiplier: float = 2.0

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            multiplier=self.multiplier,
        )


class AnalysisPipeline:
    """
    build payload → send (with retry) → parse.
    Returns an AnalysisResult or raises a PipelineError subclass; never both, never neither.
    """

    def __init__(
        self,
        config: PipelineConfig,
        transport: Optional[Transport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.transport = transport or GeminiTransport(config.gemini_api_key, timeout_s=config.timeout_s)
        self.sender = RetryingSender(self.transport, config.retry_policy(), sleep=sleep)

    def submit(self, request: AnalysisRequest) -> AnalysisResult:
        payload = build_payload(
            request,
            model=self.config.model,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
        )
        logger.info("Submitting analysis: %s", payload.describe())

        text = self.sender.send(payload)

        # MalformedJson is final for this submission
        result = parse_analysis(text)

        if len(result.headlines) != request.headline_count:
            logger.info(
                "Model returned %d headline pairs, %d requested",
                len(result.headlines),
                request.headline_count,
            )
        return result


def build_pipeline(settings) -> AnalysisPipeline:
    cfg = PipelineConfig(
        model=getattr(settings, "llm_model", "gemini-2.5-flash"),
        gemini_api_key=getattr(settings, "GEMINI_API_KEY", None),
        temperature=float(getattr(settings, "llm_temperature", 0.4)),
        max_output_tokens=int(getattr(settings, "llm_max_output_tokens", 8192)),
        timeout_s=float(getattr(settings, "llm_timeout_s", 120.0)),
        max_attempts=int(getattr(settings, "retry_max_attempts", 3)),
        base_delay_ms=int(getattr(settings, "retry_base_delay_ms", 1000)),
        multiplier=float(getattr(settings, "retry_multiplier", 2.0)),
    )
    return AnalysisPipeline(cfg)
