"""Runtime settings, read from ``CONTRACT_MOCK_*`` environment variables."""

import os

from pydantic import BaseModel

ENV_PREFIX = "CONTRACT_MOCK_"

DEFAULT_SERVICE_URL = "http://localhost:8787"
DEFAULT_FLUSH_THRESHOLD = 10
DEFAULT_TIMEOUT = 10.0

_TRUTHY = ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Settings for sessions, recording and verification."""

    service_url: str = DEFAULT_SERVICE_URL
    api_key: str = ""
    consumer: str = "unknown-consumer"
    consumer_version: str = "0.0.0"
    environment: str = "test"
    recording_enabled: bool = False
    flush_threshold: int = DEFAULT_FLUSH_THRESHOLD
    request_timeout: float = DEFAULT_TIMEOUT
    debug: bool = False

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from the environment.

        Recording defaults to on only in CI (``CI=true``) unless
        ``CONTRACT_MOCK_RECORDING`` says otherwise.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        in_ci = env.get("CI", "").lower() == "true"
        recording = get("RECORDING", "true" if in_ci else "false")

        return cls(
            service_url=get("SERVICE_URL", DEFAULT_SERVICE_URL),
            api_key=get("API_KEY", ""),
            consumer=get("CONSUMER", "unknown-consumer"),
            consumer_version=get("CONSUMER_VERSION", "0.0.0"),
            environment=get("ENVIRONMENT", "test"),
            recording_enabled=recording.lower() in _TRUTHY,
            flush_threshold=int(get("FLUSH_THRESHOLD", str(DEFAULT_FLUSH_THRESHOLD))),
            request_timeout=float(get("TIMEOUT", str(DEFAULT_TIMEOUT))),
            debug=get("DEBUG", "false").lower() in _TRUTHY,
        )


def debug_enabled() -> bool:
    """Whether ``CONTRACT_MOCK_DEBUG`` asks for debug traces."""
    return os.environ.get(ENV_PREFIX + "DEBUG", "").lower() in _TRUTHY
