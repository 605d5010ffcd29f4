"""Consumer-side sessions built around the request router."""

import logging
import time
from typing import Any

from contract_mock.config import Settings
from contract_mock.errors import UnsupportedFormatError
from contract_mock.matching import OperationMatcher
from contract_mock.model import APISpec, Fixture, UnifiedRequest, UnifiedResponse
from contract_mock.recording import UNKNOWN_OPERATION, FixtureCollector, Interaction, InteractionRecorder, MatchContext
from contract_mock.router import MatchOutcome, RequestRouter
from contract_mock.spec.registry import SpecRegistry, spec_registry

logger = logging.getLogger(__name__)


def load_spec(spec: APISpec | Any, registry: SpecRegistry = spec_registry) -> APISpec:
    if isinstance(spec, APISpec):
        return spec
    parsed = registry.parse_spec(spec)
    if parsed is None:
        raise UnsupportedFormatError(f"Unsupported spec format; supported types: {registry.supported_types}")
    return parsed


def is_success(response: UnifiedResponse) -> bool:
    return 200 <= response.status < 300


class MockSession:
    """Answers requests from a spec and its fixtures, recording each one.

    Every request is recorded. Only 2xx outcomes with an identified
    operation become fixture proposals. ``close`` flushes both.
    """

    def __init__(
        self,
        spec: APISpec | Any,
        fixtures: list[Fixture] | None = None,
        service: str = "unknown-service",
        provider_version: str = "latest",
        settings: Settings | None = None,
        registry: SpecRegistry = spec_registry,
        recorder: InteractionRecorder | None = None,
        collector: FixtureCollector | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self.spec = load_spec(spec, registry)
        self.service = service
        self.provider_version = provider_version
        self.router = RequestRouter(self.spec, fixtures, registry=registry, debug=self.settings.debug)
        self.recorder = recorder or InteractionRecorder(self.settings)
        self.collector = collector or FixtureCollector(
            service, provider_version, spec_type=self.spec.type, settings=self.settings
        )
        self.closed = False

    def handle(self, request: UnifiedRequest) -> MatchOutcome:
        started = time.perf_counter()
        outcome = self.router.handle(request)
        duration_ms = (time.perf_counter() - started) * 1000

        selected = outcome.match.selected
        operation_id = selected.operation.id if selected else UNKNOWN_OPERATION
        match_context = None
        if selected is not None:
            match_context = MatchContext(
                selected_operation_id=operation_id,
                candidates=[
                    {"operationId": c.operation.id, "confidence": c.confidence, "reasons": c.reasons}
                    for c in outcome.match.candidates
                ],
                fixture_id=outcome.fixture_selection.selected.fixture_id if outcome.fixture_selection else None,
                fixture_reasons=outcome.fixture_selection.selected.reasons if outcome.fixture_selection else [],
            )

        self.recorder.record(
            Interaction(
                service=self.service,
                provider_version=self.provider_version,
                operation=operation_id,
                request=request,
                response=outcome.response,
                match_context=match_context,
                duration_ms=duration_ms,
            )
        )
        if selected is not None and is_success(outcome.response):
            self.collector.collect_exchange(operation_id, request, outcome.response)
        return outcome

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.recorder.flush()
        finally:
            self.collector.flush()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class Interceptor:
    """Classifies real traffic against a spec without synthesizing responses."""

    def __init__(
        self,
        spec: APISpec | Any,
        service: str = "unknown-service",
        provider_version: str = "latest",
        settings: Settings | None = None,
        registry: SpecRegistry = spec_registry,
        recorder: InteractionRecorder | None = None,
        collector: FixtureCollector | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self.spec = load_spec(spec, registry)
        self.service = service
        self.provider_version = provider_version
        self.matcher = OperationMatcher(self.spec, registry=registry, debug=self.settings.debug)
        self.recorder = recorder or InteractionRecorder(self.settings)
        self.collector = collector or FixtureCollector(
            service, provider_version, spec_type=self.spec.type, settings=self.settings
        )

    def classify(self, request: UnifiedRequest, response: UnifiedResponse, duration_ms: float = 0.0) -> tuple[str, float]:
        """Return the matched operation id and confidence, recording the pair."""
        match = self.matcher.match(request)
        selected = match.selected
        operation_id = selected.operation.id if selected else UNKNOWN_OPERATION
        confidence = selected.confidence if selected else 0.0

        self.recorder.record(
            Interaction(
                service=self.service,
                provider_version=self.provider_version,
                operation=operation_id,
                request=request,
                response=response,
                duration_ms=duration_ms,
                match_context=MatchContext(
                    selected_operation_id=operation_id,
                    candidates=[
                        {"operationId": c.operation.id, "confidence": c.confidence, "reasons": c.reasons}
                        for c in match.candidates
                    ],
                ) if selected else None,
            )
        )
        if selected is not None and is_success(response):
            self.collector.collect_exchange(operation_id, request, response)
        return operation_id, confidence

    def close(self) -> None:
        try:
            self.recorder.flush()
        finally:
            self.collector.flush()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
