"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import (
    BBOX_PADDING_DEG,
    DEBOUNCE_SECONDS,
    DEFAULT_API_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _float_env(env: Mapping[str, str], key: str, fallback: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-numeric %s=%r", key, raw)
        return fallback
    return value if value > 0 else fallback


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    debounce_seconds: float = DEBOUNCE_SECONDS
    bbox_padding: float = BBOX_PADDING_DEG
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``UHI_*`` environment variables."""

        env = os.environ if env is None else env
        base_url = (env.get("UHI_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/")
        return cls(
            api_base_url=base_url,
            request_timeout=_float_env(env, "UHI_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            debounce_seconds=_float_env(env, "UHI_DEBOUNCE_SECONDS", DEBOUNCE_SECONDS),
            log_level=(env.get("UHI_LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


__all__ = ["Settings", "configure_logging", "LOG_FORMAT"]
