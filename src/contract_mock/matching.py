"""Operation matcher: binds one parsed spec to its handler."""

import logging

from contract_mock.config import debug_enabled
from contract_mock.model import (
    APIOperation,
    APISpec,
    OperationMatchContext,
    OperationMatchResult,
    UnifiedRequest,
)
from contract_mock.spec.base import SpecHandler, no_match
from contract_mock.spec.registry import SpecRegistry, spec_registry

logger = logging.getLogger(__name__)


class OperationMatcher:
    """Resolves the spec's handler once and caches its operations.

    A spec whose type has no registered handler yields empty results from
    ``match`` rather than raising.
    """

    def __init__(
        self,
        spec: APISpec,
        handler: SpecHandler | None = None,
        registry: SpecRegistry = spec_registry,
        debug: bool | None = None,
    ):
        self.spec = spec
        self.handler = handler or registry.get_handler(spec.type)
        self.debug = debug_enabled() if debug is None else debug
        self.operations: list[APIOperation] = []
        if self.handler is None:
            logger.warning("No handler registered for spec type: %s", spec.type)
        else:
            self.operations = self.handler.extract_operations(spec)

    def match(self, request: UnifiedRequest) -> OperationMatchResult:
        if self.handler is None:
            return no_match()

        result = self.handler.match_operation(
            OperationMatchContext(
                request=request,
                operations=self.operations,
                spec_type=self.spec.type,
                spec=self.spec,
            )
        )

        if self.debug:
            logger.debug(
                "Matching %s %s (channel=%s): %d candidates",
                request.method, request.path, request.channel, len(result.candidates),
            )
            for candidate in result.candidates:
                logger.debug(
                    "  %s confidence=%.3f reasons=%s",
                    candidate.operation.id, candidate.confidence, candidate.reasons,
                )
        return result
