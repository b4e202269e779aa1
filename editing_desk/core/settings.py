from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic_settings import BaseSettings


def _config_path() -> Path:
    override = os.getenv("EDITING_DESK_CONFIG")
    if override:
        return Path(override)
    root = Path(__file__).resolve().parents[2]  # project root
    return root / "config.yaml"


def _load_yaml_config() -> dict:
    cfg_path = _config_path()
    if not cfg_path.exists():
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    # LLM
    llm_model: str = "gemini-2.5-flash"
    llm_temperature: float = 0.4
    llm_max_output_tokens: int = 8192
    llm_timeout_s: float = 120.0

    # Retry
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 1000
    retry_multiplier: float = 2.0

    # UI
    default_headline_count: int = 10
    max_image_bytes: int = 10 * 1024 * 1024

    # Secrets / deployment identifiers (opaque pass-through)
    GEMINI_API_KEY: Optional[str] = None
    FIREBASE_CONFIG: Optional[str] = None  # JSON web config, e.g. {"apiKey": "..."}
    INITIAL_AUTH_TOKEN: Optional[str] = None
    APP_ID: str = "default-app-id"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def __init__(self, **kwargs):
        cfg = _load_yaml_config()
        llm = (cfg.get("llm") or {})
        retry = (cfg.get("retry") or {})
        ui = (cfg.get("ui") or {})

        from_yaml = {
            "llm_model": llm.get("model"),
            "llm_temperature": llm.get("temperature"),
            "llm_max_output_tokens": llm.get("max_output_tokens"),
            "llm_timeout_s": llm.get("timeout_s"),
            "retry_max_attempts": retry.get("max_attempts"),
            "retry_base_delay_ms": retry.get("base_delay_ms"),
            "retry_multiplier": retry.get("multiplier"),
            "default_headline_count": ui.get("default_headline_count"),
            "max_image_bytes": ui.get("max_image_bytes"),
        }
        # explicit kwargs win over config.yaml
        merged = {k: v for k, v in from_yaml.items() if v is not None}
        merged.update(kwargs)
        super().__init__(**merged)

    def firebase_config(self) -> dict[str, Any]:
        """
        Parsed FIREBASE_CONFIG, or {} when unset or not a JSON object.
        """
        raw = (self.FIREBASE_CONFIG or "").strip()
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
