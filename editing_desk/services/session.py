from __future__ import annotations

import logging
import threading
from typing import Optional

from editing_desk.schemas.analysis import AnalysisResult
from editing_desk.services.errors import NoInput
from editing_desk.services.prompt_builder import AnalysisRequest

logger = logging.getLogger(__name__)

REFRESH_KINDS = ("headlines", "corrections")


class EditingSession:
    """
    In-memory "current analysis" slot for the desk.
    Each completed submission replaces the slot; a completion that finishes
    after a newer submission started is discarded.
    """

    def __init__(self, pipeline):
        self.pipeline = pipeline
        self._lock = threading.Lock()
        self._seq = 0
        self._last_request: Optional[AnalysisRequest] = None
        self._current: Optional[AnalysisResult] = None

    @property
    def current(self) -> Optional[AnalysisResult]:
        with self._lock:
            return self._current

    @property
    def last_request(self) -> Optional[AnalysisRequest]:
        with self._lock:
            return self._last_request

    def submit(self, request: AnalysisRequest) -> AnalysisResult:
        if not request.has_input:
            raise NoInput("neither article text nor an image was provided")

        with self._lock:
            self._seq += 1
            token = self._seq
            self._last_request = request
            self._current = None

        result = self.pipeline.submit(request)

        with self._lock:
            if token != self._seq:
                logger.info("Discarding stale analysis #%d (latest is #%d)", token, self._seq)
                return result
            self._current = result
        return result

    def refresh(self, kind: str) -> AnalysisResult:
        if kind not in REFRESH_KINDS:
            raise ValueError(f"Unknown refresh kind: {kind}. Use one of {list(REFRESH_KINDS)}")
        request = self.last_request
        if request is None:
            raise NoInput("nothing has been analyzed yet")
        logger.info("Refreshing %s with the last request", kind)
        return self.submit(request)
