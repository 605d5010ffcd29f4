from contract_mock.model import APIOperation, Fixture, OperationMatchCandidate, UnifiedRequest
from contract_mock.scoring import request_alignment, score_fixtures_default


def _match(operation_id: str = "listCastles") -> OperationMatchCandidate:
    return OperationMatchCandidate(
        operation=APIOperation(id=operation_id, type="rest", method="GET", path="/castles"),
        confidence=1.0,
    )


def _fixture(fixture_id: str, source: str, priority: int = 0, operation: str = "listCastles", request=None) -> Fixture:
    return Fixture(
        id=fixture_id,
        operation=operation,
        source=source,
        priority=priority,
        data={"request": request, "response": {"status": 200, "body": []}},
    )


GET_CASTLES = UnifiedRequest(method="GET", path="/castles")


class TestScoreFixturesDefault:
    def test_high_priority_consumer_beats_provider(self):
        fixtures = [_fixture("provider", "provider", 0), _fixture("consumer", "consumer", 5)]
        result = score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert result.selected.fixture_id == "consumer"
        assert [(b.fixture_id, b.total) for b in result.ordered] == [("consumer", 35), ("provider", 30)]

    def test_breakdown(self):
        result = score_fixtures_default([_fixture("fx", "manual", 2)], GET_CASTLES, _match())
        breakdown = result.selected
        assert breakdown.base == 0
        assert breakdown.priority == 10
        assert breakdown.source_bias == 20
        assert breakdown.specificity is None
        assert breakdown.total == 30
        assert breakdown.reasons == ["source_manual", "priority_2"]

    def test_source_bias_order(self):
        fixtures = [_fixture("c", "consumer"), _fixture("m", "manual"), _fixture("p", "provider")]
        result = score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert [b.fixture_id for b in result.ordered] == ["p", "m", "c"]

    def test_never_fabricates_a_match(self):
        fixtures = [_fixture("other", "provider", 9, operation="getCastle")]
        result = score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert result.selected is None
        assert result.ordered == []

    def test_only_related_fixtures_are_scored(self):
        fixtures = [_fixture("other", "provider", operation="getCastle"), _fixture("mine", "consumer")]
        result = score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert [b.fixture_id for b in result.ordered] == ["mine"]

    def test_ties_keep_pool_order(self):
        fixtures = [_fixture("first", "consumer", 1), _fixture("second", "consumer", 1)]
        result = score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert [b.fixture_id for b in result.ordered] == ["first", "second"]

    def test_scoring_does_not_mutate_pool(self):
        fixtures = [_fixture("a", "consumer"), _fixture("b", "provider")]
        snapshot = [f.model_dump() for f in fixtures]
        score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert [f.model_dump() for f in fixtures] == snapshot


class TestRequestAlignment:
    def test_path_body_and_query(self):
        request = UnifiedRequest(
            method="POST", path="/castles", query={"region": "north"}, body={"name": "Bodiam"}
        )
        fixture = _fixture("fx", "consumer", request={
            "path": "/castles",
            "query": {"region": "south", "limit": "5"},
            "body": {"name": "Bodiam"},
        })
        score, reasons = request_alignment(request, fixture)
        assert score == 25
        assert reasons == ["path_exact", "body_equal", "query_subset"]

    def test_different_body(self):
        request = UnifiedRequest(method="POST", path="/castles", body={"name": "Bodiam"})
        fixture = _fixture("fx", "consumer", request={"path": "/other", "body": {"name": "Leeds"}})
        assert request_alignment(request, fixture) == (0, [])

    def test_query_not_subset(self):
        request = UnifiedRequest(method="GET", path="/castles", query={"region": "north", "page": "2"})
        fixture = _fixture("fx", "consumer", request={"query": {"region": "north"}})
        assert request_alignment(request, fixture) == (0, [])

    def test_no_stored_request(self):
        assert request_alignment(GET_CASTLES, _fixture("fx", "consumer")) == (0, [])

    def test_alignment_adds_to_total(self):
        fixtures = [
            _fixture("plain", "provider"),
            _fixture("exact", "consumer", request={"path": "/castles"}),
        ]
        result = score_fixtures_default(fixtures, GET_CASTLES, _match())
        assert result.ordered[0].fixture_id == "plain"
        exact = [b for b in result.ordered if b.fixture_id == "exact"][0]
        assert exact.specificity == 10
        assert exact.total == 20
