"""Unified data models shared by every spec handler.

Handlers (OpenAPI, GraphQL, AsyncAPI) convert their input into these
standard models so matching, scoring and routing never look at a raw
specification document.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SpecType = Literal["openapi", "graphql", "asyncapi"]
FixtureSource = Literal["provider", "manual", "consumer"]


class CamelModel(BaseModel):
    # Stored fixtures and interactions use camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UnifiedRequest(CamelModel):
    """A format-agnostic request: REST, GraphQL or event shaped."""

    method: str | None = None
    path: str | None = None
    headers: dict[str, str] = {}
    query: dict[str, Any] = {}
    body: Any = None
    channel: str | None = None
    event_type: str | None = None

    @field_validator("headers")
    @classmethod
    def _lower_header_keys(cls, value: dict[str, str]) -> dict[str, str]:
        return {k.lower(): v for k, v in value.items()}

    def header(self, name: str) -> str | None:
        """Get a header value by name (case-insensitive)."""
        return self.headers.get(name.lower())


class UnifiedResponse(CamelModel):
    status: int = 200
    headers: dict[str, str] = {}
    body: Any = None
    success: bool = True


class APISpec(CamelModel):
    """A parsed specification. The type never changes once parsed."""

    model_config = ConfigDict(frozen=True)

    type: SpecType
    version: str
    spec: Any


class Param(CamelModel):
    """A single REST parameter (query, path, header, or cookie)."""

    name: str
    location: str  # query / path / header / cookie
    required: bool
    param_type: str  # string / integer / boolean / array / object
    description: str = ""
    constraints: dict = {}  # min, max, pattern, enum, etc.


class APIOperation(CamelModel):
    """One addressable capability extracted from a specification."""

    id: str
    type: str  # rest / query / mutation / subscription / event
    method: str | None = None
    path: str | None = None
    channel: str | None = None
    direction: str | None = None  # publish / subscribe / send / receive
    message_types: list[str] = []
    parameters: list[Param] = []
    description: str | None = None
    deprecated: bool = False
    request: dict | None = None
    response: dict | None = None
    errors: list[dict] = []


class OperationMatchContext(CamelModel):
    request: UnifiedRequest
    operations: list[APIOperation]
    spec_type: SpecType
    spec: APISpec | None = None


class OperationMatchCandidate(CamelModel):
    operation: APIOperation
    confidence: float
    reasons: list[str] = []
    metrics: dict[str, float] = {}
    parameters: dict[str, Any] = {}


class OperationMatchResult(CamelModel):
    """All considered candidates, best first.

    A missing ``selected`` means no operation was identified, which is a
    normal outcome rather than an error.
    """

    candidates: list[OperationMatchCandidate] = []
    selected: OperationMatchCandidate | None = None


class FixtureData(CamelModel):
    request: dict | None = None
    response: Any = None
    state: dict | None = None


class Fixture(CamelModel):
    id: str
    operation: str
    source: FixtureSource
    priority: int = 0
    status: str = "approved"
    spec_type: SpecType | None = None
    service: str | None = None
    service_version: str | None = None
    data: FixtureData
    notes: str | None = None


class FixtureScoreBreakdown(CamelModel):
    fixture_id: str
    base: int = 0
    priority: int
    source_bias: int
    specificity: int | None = None
    total: int
    reasons: list[str] = []


class FixtureSelectionResult(CamelModel):
    ordered: list[FixtureScoreBreakdown] = []
    selected: FixtureScoreBreakdown | None = None


class ValidationIssue(CamelModel):
    path: str
    message: str
    expected: Any = None
    actual: Any = None
    code: str | None = None


class ValidationResult(CamelModel):
    valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)


def combine_validation_results(results: list[ValidationResult]) -> ValidationResult:
    errors = [issue for result in results for issue in result.errors]
    return ValidationResult(valid=not errors, errors=errors)
