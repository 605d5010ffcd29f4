"""Provider verification: replay recorded interactions against a real service."""

import logging
from typing import Any, Callable

import requests
from pydantic import BaseModel

from contract_mock.matching import OperationMatcher
from contract_mock.model import (
    APISpec,
    OperationMatchResult,
    UnifiedRequest,
    UnifiedResponse,
    ValidationIssue,
    ValidationResult,
    combine_validation_results,
)
from contract_mock.recording import Interaction
from contract_mock.spec.base import compare_structure, normalize_headers, parse_content_type, validation_error
from contract_mock.spec.registry import SpecRegistry, spec_registry

logger = logging.getLogger(__name__)

Send = Callable[[UnifiedRequest], UnifiedResponse]
StateHandler = Callable[[Interaction], Any]


class VerificationResult(BaseModel):
    interaction_id: str
    operation: str
    success: bool
    error: str | None = None
    errors: list[ValidationIssue] = []
    actual_response: UnifiedResponse | None = None
    match: OperationMatchResult | None = None


class HttpProvider:
    """Sends unified requests to a running provider over HTTP."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, request: UnifiedRequest) -> UnifiedResponse:
        kwargs: dict[str, Any] = {
            "headers": request.headers,
            "params": request.query or None,
            "timeout": self.timeout,
        }
        if isinstance(request.body, (dict, list)):
            kwargs["json"] = request.body
        elif request.body is not None:
            kwargs["data"] = request.body

        resp = self.session.request(request.method or "GET", self.base_url + (request.path or "/"), **kwargs)
        headers = normalize_headers(dict(resp.headers))
        media_type, _ = parse_content_type(headers.get("content-type", ""))
        body = resp.text or None
        if media_type.endswith("json"):
            try:
                body = resp.json()
            except ValueError:
                pass
        return UnifiedResponse(
            status=resp.status_code,
            headers=headers,
            body=body,
            success=resp.ok,
        )


class Verifier:
    def __init__(
        self,
        spec: APISpec,
        send: Send,
        registry: SpecRegistry = spec_registry,
        state_handlers: dict[str, StateHandler] | None = None,
    ):
        self.spec = spec
        self.send = send
        self.handler = registry.get_handler(spec.type)
        self.matcher = OperationMatcher(spec, handler=self.handler, registry=registry)
        self.state_handlers = state_handlers or {}

    def verify(self, interaction: Interaction) -> VerificationResult:
        match = self.matcher.match(interaction.request)

        state_handler = self.state_handlers.get(interaction.operation)
        try:
            if state_handler is not None:
                state_handler(interaction)
            actual = self.send(interaction.request)
        except Exception as e:
            logger.warning("Replay of %s failed: %s", interaction.id, e)
            return VerificationResult(
                interaction_id=interaction.id,
                operation=interaction.operation,
                success=False,
                error=str(e),
                match=match,
            )

        result = self.compare(interaction.response, actual, match)
        return VerificationResult(
            interaction_id=interaction.id,
            operation=interaction.operation,
            success=result.valid,
            error=None if result.valid else result.errors[0].message,
            errors=result.errors,
            actual_response=actual,
            match=match,
        )

    def compare(self, expected: UnifiedResponse, actual: UnifiedResponse, match: OperationMatchResult) -> ValidationResult:
        results = []
        if expected.status != actual.status:
            results.append(validation_error(
                "response.status",
                f"Status code mismatch: expected {expected.status}, got {actual.status}",
                expected.status,
                actual.status,
                code="status_mismatch",
            ))
        if match.selected is not None and self.handler is not None:
            body_result = self.handler.validate_response(match.selected.operation, expected.body, actual.body)
        else:
            issues = compare_structure(expected.body, actual.body)
            body_result = ValidationResult(valid=not issues, errors=issues)
        results.append(body_result)
        return combine_validation_results(results)

    def verify_all(self, interactions: list[Interaction]) -> list[VerificationResult]:
        results = [self.verify(interaction) for interaction in interactions]
        failed = sum(1 for r in results if not r.success)
        logger.info("Verified %d interactions, %d failed", len(results), failed)
        return results
