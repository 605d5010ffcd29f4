"""Request router: match, score, then answer from a fixture or synthesize.

Every mocked request goes through ``RequestRouter.handle``. Failures inside
scoring or synthesis never escape; they degrade to the unmatched response.
"""

import logging

from pydantic import BaseModel

from contract_mock.config import debug_enabled
from contract_mock.errors import (
    INTERNAL_SYNTHESIS_ERROR,
    OPERATION_NOT_FOUND,
    HandlerNotFoundError,
    SynthesisError,
)
from contract_mock.matching import OperationMatcher
from contract_mock.model import (
    APISpec,
    Fixture,
    FixtureSelectionResult,
    OperationMatchResult,
    UnifiedRequest,
    UnifiedResponse,
)
from contract_mock.spec.base import JSON_HEADERS, SpecHandler, find_fixture, fixture_response, no_match
from contract_mock.spec.registry import SpecRegistry, spec_registry

logger = logging.getLogger(__name__)


class MatchOutcome(BaseModel):
    match: OperationMatchResult
    fixture_selection: FixtureSelectionResult | None = None
    response: UnifiedResponse


def error_response(code: str) -> UnifiedResponse:
    return UnifiedResponse(status=404, headers=dict(JSON_HEADERS), body={"error": code}, success=False)


class RequestRouter:
    def __init__(
        self,
        spec: APISpec,
        fixtures: list[Fixture] | None = None,
        handler: SpecHandler | None = None,
        registry: SpecRegistry = spec_registry,
        debug: bool | None = None,
    ):
        handler = handler or registry.get_handler(spec.type)
        if handler is None:
            raise HandlerNotFoundError(spec.type)
        self.spec = spec
        self.handler = handler
        self.fixtures = list(fixtures or [])
        self.debug = debug_enabled() if debug is None else debug
        self.matcher = OperationMatcher(spec, handler=handler, debug=self.debug)

    @property
    def operations(self):
        return self.matcher.operations

    def handle(self, request: UnifiedRequest, fixtures: list[Fixture] | None = None) -> MatchOutcome:
        """Resolve ``request`` to a response.

        ``fixtures`` overrides the router's own pool for this call only.
        """
        pool = self.fixtures if fixtures is None else fixtures
        match = self.matcher.match(request)
        selected = match.selected
        if selected is None:
            return MatchOutcome(match=match, response=error_response(OPERATION_NOT_FOUND))

        operation = selected.operation
        try:
            selection = self.handler.score_fixtures(pool, request, selected)
            if self.debug and selection.selected is not None:
                logger.debug(
                    "Selected fixture %s for %s (total=%d)",
                    selection.selected.fixture_id, operation.id, selection.selected.total,
                )

            if selection.selected is not None:
                stored = fixture_response(find_fixture(pool, selection.selected.fixture_id))
                if stored is not None:
                    return MatchOutcome(match=match, fixture_selection=selection, response=stored)

            response = self.handler.generate_response(operation, pool, request, selected, selection)
        except Exception as e:
            error = SynthesisError(operation.id, e)
            logger.warning("%s; answering as unmatched", error)
            if self.debug:
                logger.debug("Candidates were: %s", [c.operation.id for c in match.candidates])
            return MatchOutcome(match=no_match(), response=error_response(INTERNAL_SYNTHESIS_ERROR))

        return MatchOutcome(
            match=match,
            fixture_selection=selection if selection.selected is not None else None,
            response=response,
        )
