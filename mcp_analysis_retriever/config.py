"""
Process configuration read from the environment.

The upstream endpoint and its credential are deployment settings, never
constants in code. Everything else has a working default.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

DEFAULT_PORT = 10000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_HEARTBEAT_SECONDS = 30.0


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, str(default))
    try:
        return int(value)
    except ValueError:
        msg = f"Invalid {name} value: {value}"
        raise ValueError(msg) from None


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name, str(default))
    try:
        parsed = float(value)
    except ValueError:
        msg = f"Invalid {name} value: {value}"
        raise ValueError(msg) from None
    if parsed <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ValueError(msg)
    return parsed


@dataclass(frozen=True)
class Settings:
    """Runtime settings for both transports"""

    api_url: str = ""
    api_password: str = ""
    api_timeout: float = DEFAULT_TIMEOUT_SECONDS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS
    log_level: str = "INFO"
    log_file: Path | None = None

    @property
    def endpoint(self) -> str:
        """Upstream URL with the credential attached as ?password=..."""
        if not self.api_url or not self.api_password:
            return self.api_url
        parts = urlsplit(self.api_url)
        query = [(k, v) for k, v in parse_qsl(parts.query) if k != "password"]
        query.append(("password", self.api_password))
        return urlunsplit(parts._replace(query=urlencode(query)))


def load_settings() -> Settings:
    """Build Settings from environment variables"""
    log_file = os.environ.get("LOG_FILE")
    return Settings(
        api_url=os.environ.get("ANALYSIS_API_URL", "").strip(),
        api_password=os.environ.get("ANALYSIS_API_PASSWORD", ""),
        api_timeout=_env_float("ANALYSIS_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        host=os.environ.get("HOST", DEFAULT_HOST),
        port=_env_int("PORT", DEFAULT_PORT),
        heartbeat_seconds=_env_float("SSE_HEARTBEAT_SECONDS", DEFAULT_HEARTBEAT_SECONDS),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        log_file=Path(log_file) if log_file else None,
    )
