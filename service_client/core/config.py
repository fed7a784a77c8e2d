"""Service client configuration helpers."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
import os
from typing import TypeVar

ENV_PREFIX = "SERVICE_CLIENT_"

_T = TypeVar("_T")


def redact_secret(secret: str) -> str:
    """Return a non-recoverable placeholder for sensitive values."""
    return "<redacted>" if secret else "<empty>"


def _read(environ: Mapping[str, str], name: str, cast: Callable[[str], _T], default: _T) -> _T:
    raw = environ.get(f"{ENV_PREFIX}{name}")
    return default if raw is None else cast(raw)


@dataclass(frozen=True)
class ServiceClientSettings:
    """Remote service endpoint, credentials and retry budget."""

    base_url: str = "http://localhost:5000"
    api_token: str = ""
    timeout_seconds: float = 10.0
    max_retries: int = 3
    backoff_seconds: float = 1.0

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> ServiceClientSettings:
        """Read ``SERVICE_CLIENT_*`` variables, keeping defaults for unset ones."""
        defaults = cls()
        return cls(
            base_url=_read(environ, "BASE_URL", str, defaults.base_url),
            api_token=_read(environ, "API_TOKEN", str, defaults.api_token),
            timeout_seconds=_read(environ, "TIMEOUT_SECONDS", float, defaults.timeout_seconds),
            max_retries=_read(environ, "MAX_RETRIES", int, defaults.max_retries),
            backoff_seconds=_read(environ, "BACKOFF_SECONDS", float, defaults.backoff_seconds),
        )

    def safe_for_logging(self) -> dict[str, str | int | float]:
        return {
            "base_url": self.base_url,
            "api_token": redact_secret(self.api_token),
            "timeout_seconds": self.timeout_seconds,
            "max_retries": self.max_retries,
            "backoff_seconds": self.backoff_seconds,
        }


@lru_cache(maxsize=1)
def get_service_client_settings() -> ServiceClientSettings:
    """Load settings from the process environment once."""
    return ServiceClientSettings.from_environ(os.environ)
