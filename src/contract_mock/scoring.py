"""Default fixture scoring.

Ranks the fixtures recorded for a matched operation. The weights below are
hand-tuned policy: only their relative order carries meaning.
"""

import json

from contract_mock.model import (
    Fixture,
    FixtureScoreBreakdown,
    FixtureSelectionResult,
    OperationMatchCandidate,
    UnifiedRequest,
)

# provider > manual > consumer
SOURCE_WEIGHT = {
    "provider": 30,
    "manual": 20,
    "consumer": 10,
}
PRIORITY_WEIGHT = 5
PATH_EXACT_BONUS = 10
BODY_EQUAL_BONUS = 10
QUERY_SUBSET_BONUS = 5


def score_fixtures_default(
    fixtures: list[Fixture],
    request: UnifiedRequest,
    match: OperationMatchCandidate,
) -> FixtureSelectionResult:
    """Score the fixtures that belong to ``match.operation``, best first.

    Fixtures for other operations are skipped, never rejected. Equal totals
    keep their pool order.
    """
    related = [f for f in fixtures if f.operation == match.operation.id]
    if not related:
        return FixtureSelectionResult(ordered=[], selected=None)

    scored = [_score(fixture, request) for fixture in related]
    scored.sort(key=lambda breakdown: breakdown.total, reverse=True)
    return FixtureSelectionResult(ordered=scored, selected=scored[0])


def _score(fixture: Fixture, request: UnifiedRequest) -> FixtureScoreBreakdown:
    priority = fixture.priority * PRIORITY_WEIGHT
    source_bias = SOURCE_WEIGHT[fixture.source]
    alignment, alignment_reasons = request_alignment(request, fixture)

    return FixtureScoreBreakdown(
        fixture_id=fixture.id,
        base=0,
        priority=priority,
        source_bias=source_bias,
        specificity=alignment or None,
        total=priority + source_bias + alignment,
        reasons=[f"source_{fixture.source}", f"priority_{fixture.priority}", *alignment_reasons],
    )


def request_alignment(request: UnifiedRequest, fixture: Fixture) -> tuple[int, list[str]]:
    """Bonus for how closely a fixture's stored request matches ``request``."""
    stored = fixture.data.request
    if not stored:
        return 0, []

    score = 0
    reasons = []

    stored_path = stored.get("path")
    if request.path and stored_path and request.path == stored_path:
        score += PATH_EXACT_BONUS
        reasons.append("path_exact")

    stored_body = stored.get("body")
    if request.body is not None and stored_body is not None:
        serialized = _serialize(request.body)
        if serialized is not None and serialized == _serialize(stored_body):
            score += BODY_EQUAL_BONUS
            reasons.append("body_equal")

    stored_query = stored.get("query")
    if request.query and isinstance(stored_query, dict):
        if all(key in stored_query for key in request.query):
            score += QUERY_SUBSET_BONUS
            reasons.append("query_subset")

    return score, reasons


def _serialize(value) -> str | None:
    try:
        return json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError):
        return None
