from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    lvl = logging.getLevelName((level or "INFO").upper())
    if not isinstance(lvl, int):
        lvl = logging.INFO
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    # google-genai and httpx are chatty at INFO
    logging.getLogger("httpx").setLevel(max(lvl, logging.WARNING))
    logging.getLogger("google_genai").setLevel(max(lvl, logging.WARNING))
