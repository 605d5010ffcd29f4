"""Batch upload of recorded interactions and collected fixtures.

Both collaborators append to an in-memory pending list and upload it in one
POST on ``flush``. Upload failures are logged and dropped; they never reach
the request path that produced the data.
"""

import hashlib
import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any

import requests

from contract_mock.config import Settings
from contract_mock.model import CamelModel, FixtureData, SpecType, UnifiedRequest, UnifiedResponse

logger = logging.getLogger(__name__)

INTERACTIONS_BATCH_PATH = "/api/interactions/batch"
FIXTURES_BATCH_PATH = "/api/fixtures/batch"
UNKNOWN_OPERATION = "unknown"

# Keys left out of dedup hashes: timestamps and per-run transport headers.
VOLATILE_KEY_PATTERNS = [
    re.compile(r"timestamp", re.I),
    re.compile(r"created_?at", re.I),
    re.compile(r"updated_?at", re.I),
    re.compile(r"date", re.I),
    re.compile(r"time", re.I),
    re.compile(r"^host$", re.I),
    re.compile(r"^user-agent$", re.I),
    re.compile(r"^connection$", re.I),
    re.compile(r"^accept-encoding$", re.I),
    re.compile(r"^content-length$", re.I),
]


class MatchContext(CamelModel):
    selected_operation_id: str
    candidates: list[dict] = []
    fixture_id: str | None = None
    fixture_reasons: list[str] = []


class Interaction(CamelModel):
    """One request/response pair observed by a consumer."""

    id: str = ""
    service: str
    consumer: str = ""
    consumer_version: str = ""
    provider_version: str = ""
    environment: str = ""
    operation: str
    request: UnifiedRequest
    response: UnifiedResponse
    match_context: MatchContext | None = None
    duration_ms: float = 0.0
    timestamp: str = ""


def content_hash(*parts: Any) -> str:
    """SHA-256 over the canonical JSON form of ``parts``."""
    canonical = json.dumps(parts, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def is_volatile_key(key: str) -> bool:
    return any(pattern.search(key) for pattern in VOLATILE_KEY_PATTERNS)


def normalize_for_hashing(value: Any) -> Any:
    """Drop volatile keys at every depth so reruns hash the same."""
    if isinstance(value, dict):
        return {
            key: normalize_for_hashing(item)
            for key, item in value.items()
            if not is_volatile_key(str(key))
        }
    if isinstance(value, list):
        return [normalize_for_hashing(item) for item in value]
    return value


def _post_batch(settings: Settings, path: str, payload: Any, what: str) -> bool:
    url = settings.service_url.rstrip("/") + path
    try:
        response = requests.post(
            url,
            headers={"Authorization": f"Bearer {settings.api_key}"},
            json=payload,
            timeout=settings.request_timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Failed to upload %s batch to %s: %s", what, url, e)
        return False
    return True


class InteractionRecorder:
    def __init__(self, settings: Settings | None = None, enabled: bool | None = None):
        self.settings = settings or Settings.from_env()
        self.enabled = self.settings.recording_enabled if enabled is None else enabled
        self._pending: list[Interaction] = []
        self._seen: set[str] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def record(self, interaction: Interaction) -> bool:
        """Queue ``interaction``; returns False when skipped."""
        if not self.enabled:
            return False

        try:
            digest = content_hash(
                interaction.service,
                self.settings.consumer,
                self.settings.consumer_version,
                interaction.operation,
                normalize_for_hashing(interaction.request.model_dump(mode="json")),
                normalize_for_hashing(interaction.response.model_dump(mode="json")),
            )
        except ValueError as e:
            logger.warning("Skipping interaction for %s: %s", interaction.operation, e)
            return False
        if digest in self._seen:
            logger.debug("Skipping duplicate interaction %s", digest[:12])
            return False
        self._seen.add(digest)

        self._pending.append(
            interaction.model_copy(
                update={
                    "id": interaction.id or f"int_{uuid.uuid4().hex[:16]}",
                    "consumer": self.settings.consumer,
                    "consumer_version": self.settings.consumer_version,
                    "environment": self.settings.environment,
                    "timestamp": interaction.timestamp or datetime.now(timezone.utc).isoformat(),
                }
            )
        )
        logger.debug("Recorded interaction for %s", interaction.operation)

        if len(self._pending) >= self.settings.flush_threshold:
            self.flush()
        return True

    def flush(self) -> bool:
        if not self._pending:
            return True
        try:
            payload = [i.model_dump(mode="json", by_alias=True) for i in self._pending]
        except ValueError as e:
            logger.warning("Dropping %d interactions that could not be serialized: %s", len(self._pending), e)
            self.clear()
            return False
        ok = _post_batch(self.settings, INTERACTIONS_BATCH_PATH, payload, "interaction")
        if ok:
            logger.info("Uploaded %d interactions", len(payload))
        self.clear()
        return ok

    def clear(self) -> None:
        self._pending.clear()
        self._seen.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.flush()


class FixtureCollector:
    """Collects ``consumer`` fixture proposals for successful outcomes."""

    def __init__(
        self,
        service: str,
        provider_version: str,
        spec_type: SpecType = "openapi",
        settings: Settings | None = None,
        enabled: bool | None = None,
    ):
        self.service = service
        self.provider_version = provider_version
        self.spec_type = spec_type
        self.settings = settings or Settings.from_env()
        self.enabled = self.settings.recording_enabled if enabled is None else enabled
        self._collected: dict[str, tuple[str, FixtureData]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._collected)

    def collect(self, operation: str, data: FixtureData) -> bool:
        if not self.enabled or operation == UNKNOWN_OPERATION:
            return False
        try:
            digest = content_hash(operation, normalize_for_hashing(data.model_dump(mode="json")))
        except ValueError as e:
            logger.warning("Skipping fixture for %s: %s", operation, e)
            return False
        if digest in self._collected:
            return False
        self._collected[digest] = (operation, data)
        return True

    def collect_exchange(self, operation: str, request: UnifiedRequest, response: UnifiedResponse) -> bool:
        """Propose a fixture from a request/response pair."""
        if not self.enabled or operation == UNKNOWN_OPERATION:
            return False
        try:
            data = FixtureData(
                request=request.model_dump(mode="json", by_alias=True),
                response=response.model_dump(mode="json", exclude={"success"}),
            )
        except ValueError as e:
            logger.warning("Skipping fixture for %s: %s", operation, e)
            return False
        return self.collect(operation, data)

    def proposals(self) -> list[dict]:
        return [
            {
                "service": self.service,
                "serviceVersion": self.provider_version,
                "specType": self.spec_type,
                "operation": operation,
                "source": "consumer",
                "data": data.model_dump(mode="json", by_alias=True, exclude_none=True),
                "notes": "Auto-generated fixture from consumer test",
            }
            for operation, data in self._collected.values()
        ]

    def flush(self) -> bool:
        if not self._collected:
            return True
        try:
            proposals = self.proposals()
        except ValueError as e:
            logger.warning("Dropping %d fixtures that could not be serialized: %s", len(self._collected), e)
            self.clear()
            return False
        ok = _post_batch(self.settings, FIXTURES_BATCH_PATH, {"fixtures": proposals}, "fixture")
        if ok:
            logger.info("Uploaded %d fixtures for %s@%s", len(proposals), self.service, self.provider_version)
        self.clear()
        return ok

    def clear(self) -> None:
        self._collected.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.flush()
