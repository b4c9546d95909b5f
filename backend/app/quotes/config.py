"""Environment-driven settings for the quote service."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field


class QuoteSettings(BaseModel):
    massive_api_key: str = ""
    poll_interval: float = Field(default=5.0, gt=0)
    fetch_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> QuoteSettings:
        values: dict[str, str] = {
            "massive_api_key": os.environ.get("MASSIVE_API_KEY", "").strip(),
            "log_level": os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        }
        # Unset or blank numeric knobs fall back to the model defaults
        for field_name, env_name in (
            ("poll_interval", "QUOTE_POLL_INTERVAL"),
            ("fetch_timeout", "QUOTE_FETCH_TIMEOUT"),
        ):
            raw = os.environ.get(env_name, "").strip()
            if raw:
                values[field_name] = raw
        return cls.model_validate(values)


@lru_cache
def get_settings() -> QuoteSettings:
    return QuoteSettings.from_env()
