# settings.py
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_timeout(name: str) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw or raw.lower() == "none":
        return None
    return float(raw)


@dataclass(frozen=True)
class Settings:
    api_url: str = "http://localhost:8000"
    api_timeout: Optional[float] = None  # None: wait forever
    dash_host: str = "127.0.0.1"
    dash_port: int = 8050
    dash_debug: bool = False
    poll_interval_ms: int = 500
    log_level: str = "INFO"

    @property
    def dash_url(self) -> str:
        return f"http://{self.dash_host}:{self.dash_port}"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("ATTRITION_API_URL", cls.api_url).rstrip("/"),
            api_timeout=_env_timeout("ATTRITION_API_TIMEOUT"),
            dash_host=os.getenv("DASH_HOST", cls.dash_host),
            dash_port=int(os.getenv("DASH_PORT", str(cls.dash_port))),
            dash_debug=_env_bool("DASH_DEBUG"),
            poll_interval_ms=int(os.getenv("POLL_INTERVAL_MS", str(cls.poll_interval_ms))),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger to write to stdout."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
