"""
Tests for the /api/ai routes and the backend app's own endpoints
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fantasy_ai.api.ai import get_ai_service
from fantasy_ai.core.errors import AIServiceError, AnalysisError
from fantasy_ai.models.ai_models import (
    AIProvider,
    AIResponse,
    AIUsage,
    StartSitRequest,
    TradeAnalysisRequest,
)
from fantasy_ai.models.database_models import AIAnalysis, AnalysisType, League, TradeAnalysis, User
from fantasy_ai.services import response_parser
from fantasy_ai.services.ai_service import AIService
from fantasy_ai.services.cache_service import CacheService


@pytest.fixture
def fake_service(client):
    service = MagicMock()
    service.chat = AsyncMock()
    service.analyze_start_sit = AsyncMock()
    service.analyze_trade_proposal = AsyncMock()
    service.analyze_waiver_wire = AsyncMock()
    service.optimize_lineup = AsyncMock()
    service.health_check = AsyncMock()
    client.app.dependency_overrides[get_ai_service] = lambda: service
    return service


@pytest.fixture
def real_service(client):
    service = AIService(ai_client=MagicMock(), sleeper_client=MagicMock(), mcp_client=MagicMock())
    client.app.dependency_overrides[get_ai_service] = lambda: service
    return service


START_SIT_BODY = {"leagueId": "league-1", "week": 5, "playerIds": ["p1", "p2"], "rosterSlots": ["QB", "RB"]}
TRADE_BODY = {
    "leagueId": "league-1",
    "week": 8,
    "team1Players": {"give": ["p1"], "receive": ["p2"]},
    "team2Players": {"give": ["p2"], "receive": ["p1"]},
}


class TestAnalysisRoutes:
    def test_requires_authentication(self, client, fake_service):
        response = client.post("/api/ai/start-sit", json=START_SIT_BODY)

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "No token provided"
        fake_service.analyze_start_sit.assert_not_awaited()

    def test_start_sit(self, client, fake_service, user, auth_headers):
        request = StartSitRequest.model_validate(START_SIT_BODY)
        fake_service.analyze_start_sit.return_value = response_parser.start_sit_fallback(request)

        response = client.post("/api/ai/start-sit", json=START_SIT_BODY, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["confidenceScore"] == 0.1
        assert body["metadata"]["analysisType"] == "start_sit"
        assert body["metadata"]["week"] == 5
        assert body["metadata"]["playerCount"] == 2
        _, passed_user, passed_request = fake_service.analyze_start_sit.await_args.args
        assert passed_user.id == user.id
        assert passed_request.player_ids == ["p1", "p2"]

    def test_start_sit_validation(self, client, fake_service, auth_headers):
        response = client.post(
            "/api/ai/start-sit", json={**START_SIT_BODY, "week": 19, "playerIds": []}, headers=auth_headers
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "week" in error["message"]
        assert "playerIds" in error["message"]

    def test_start_sit_failure(self, client, fake_service, auth_headers):
        fake_service.analyze_start_sit.side_effect = AnalysisError("Start/Sit analysis failed: League not found")

        response = client.post("/api/ai/start-sit", json=START_SIT_BODY, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "START_SIT_ANALYSIS_FAILED",
            "message": "Failed to perform start/sit analysis",
            "details": "Start/Sit analysis failed: League not found",
        }

    def test_trade_analysis(self, client, fake_service, auth_headers):
        result = response_parser.trade_fallback(TradeAnalysisRequest.model_validate(TRADE_BODY))
        fake_service.analyze_trade_proposal.return_value = result

        response = client.post("/api/ai/trade-analysis", json=TRADE_BODY, headers=auth_headers)

        assert response.status_code == 200
        metadata = response.json()["metadata"]
        assert metadata["recommendation"] == "consider"
        assert metadata["grade"] == "C"

    def test_trade_analysis_failure(self, client, fake_service, auth_headers):
        fake_service.analyze_trade_proposal.side_effect = AnalysisError("boom")

        response = client.post("/api/ai/trade-analysis", json=TRADE_BODY, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "TRADE_ANALYSIS_FAILED"

    def test_waiver_wire(self, client, fake_service, auth_headers):
        fake_service.analyze_waiver_wire.return_value = response_parser.waiver_wire_fallback()

        response = client.post(
            "/api/ai/waiver-wire", json={"leagueId": "league-1", "week": 3, "budget": 25}, headers=auth_headers
        )

        assert response.status_code == 200
        metadata = response.json()["metadata"]
        assert metadata["recommendationCount"] == 0
        assert metadata["budget"] == 25

    def test_waiver_wire_rejects_negative_budget(self, client, fake_service, auth_headers):
        response = client.post(
            "/api/ai/waiver-wire", json={"leagueId": "league-1", "week": 3, "budget": -1}, headers=auth_headers
        )

        assert response.status_code == 400

    def test_lineup_optimizer(self, client, fake_service, auth_headers):
        fake_service.optimize_lineup.return_value = response_parser.lineup_fallback()

        response = client.post("/api/ai/lineup-optimizer", json={"leagueId": "league-1", "week": 3}, headers=auth_headers)

        assert response.status_code == 200
        metadata = response.json()["metadata"]
        assert metadata["optimization"] == "balanced"
        assert metadata["lineupCount"] == 1

    def test_lineup_optimizer_failure(self, client, fake_service, auth_headers):
        fake_service.optimize_lineup.side_effect = AnalysisError("timeout")

        response = client.post("/api/ai/lineup-optimizer", json={"leagueId": "league-1", "week": 3}, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "LINEUP_OPTIMIZER_FAILED"


class TestChatRoute:
    def test_chat(self, client, fake_service, auth_headers):
        fake_service.chat.return_value = AIResponse(
            content="Start him",
            provider=AIProvider.OPENAI,
            model="gpt-test",
            usage=AIUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )

        response = client.post(
            "/api/ai/chat",
            json={"messages": [{"role": "user", "content": "Start Allen?"}], "temperature": 0},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["content"] == "Start him"
        assert body["metadata"]["provider"] == "openai"
        assert body["metadata"]["tokens"] == 15
        assert fake_service.chat.await_args.args[0].temperature == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {"messages": []},
            {"messages": [{"role": "robot", "content": "hi"}]},
            {"messages": [{"role": "user", "content": "hi"}], "maxTokens": 9000},
            {"messages": [{"role": "user", "content": "hi"}], "temperature": 3},
            {"messages": [{"role": "user", "content": "hi"}], "provider": "llama"},
        ],
    )
    def test_chat_validation(self, client, fake_service, auth_headers, payload):
        response = client.post("/api/ai/chat", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        fake_service.chat.assert_not_awaited()

    def test_chat_failure(self, client, fake_service, auth_headers):
        fake_service.chat.side_effect = AIServiceError("AI request failed: down; proxy: down")

        response = client.post(
            "/api/ai/chat", json={"messages": [{"role": "user", "content": "hi"}]}, headers=auth_headers
        )

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "AI_CHAT_FAILED"
        assert error["message"] == "Failed to process AI chat request"


class TestAIHealthRoute:
    def test_healthy(self, client, fake_service):
        fake_service.health_check.return_value = {
            "directProviders": {"claude": False, "openai": False, "gemini": False},
            "mcpService": False,
            "sleeperAPI": True,
        }

        response = client.get("/api/ai/health")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"

    def test_degraded(self, client, fake_service):
        fake_service.health_check.return_value = {
            "directProviders": {"claude": False, "openai": False, "gemini": False},
            "mcpService": False,
            "sleeperAPI": False,
        }

        response = client.get("/api/ai/health")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "degraded"

    def test_probe_error(self, client, fake_service):
        fake_service.health_check.side_effect = RuntimeError("probe crashed")

        response = client.get("/api/ai/health")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "HEALTH_CHECK_FAILED"


class TestStoredAnalysisRoutes:
    def _store(self, db, user, league, analysis_type=AnalysisType.START_SIT):
        record = AIAnalysis(
            user_id=user.id,
            league_id=league.id,
            analysis_type=analysis_type,
            input={"week": 5},
            output={"confidenceScore": 0.8},
            analysis_metadata={"provider": "claude"},
        )
        db.add(record)
        db.commit()
        return record.id

    def test_get_analysis(self, client, real_service, db, user, league, auth_headers):
        analysis_id = self._store(db, user, league)

        response = client.get(f"/api/ai/analysis/{analysis_id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == analysis_id
        assert data["analysisType"] == "start_sit"
        assert data["output"] == {"confidenceScore": 0.8}
        assert data["metadata"] == {"provider": "claude"}

    def test_get_missing_analysis(self, client, real_service, auth_headers):
        response = client.get("/api/ai/analysis/does-not-exist", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Analysis does-not-exist not found"

    def test_history(self, client, real_service, db, user, league, auth_headers):
        self._store(db, user, league, AnalysisType.START_SIT)
        self._store(db, user, league, AnalysisType.WAIVER_WIRE)

        response = client.get("/api/ai/history?analysisType=waiver_wire", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert [item["analysisType"] for item in body["data"]] == ["waiver_wire"]
        assert body["metadata"]["count"] == 1
        assert body["metadata"]["limit"] == 10

    def test_history_limit_bounds(self, client, real_service, auth_headers):
        response = client.get("/api/ai/history?limit=500", headers=auth_headers)

        assert response.status_code == 400

    def test_history_failure(self, client, real_service, auth_headers):
        with patch.object(real_service, "list_history", side_effect=RuntimeError("db gone")):
            response = client.get("/api/ai/history", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "GET_HISTORY_FAILED"

    def test_league_trade_analyses(self, client, real_service, db, user, league, auth_headers):
        teammate = User(email="rival@example.com", display_name="Rival")
        db.add(teammate)
        db.commit()
        db.add(
            TradeAnalysis(
                league_id=league.id,
                requested_by=teammate.id,
                team1_players={"give": ["p1"], "receive": ["p2"]},
                team2_players={"give": ["p2"], "receive": ["p1"]},
                fairness_score=72.5,
                team1_grade="B",
                team2_grade="B-",
                recommendation="accept",
            )
        )
        db.commit()

        response = client.get(f"/api/ai/leagues/{league.id}/trade-analyses", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["metadata"]["count"] == 1
        assert body["metadata"]["role"] == "owner"
        trade = body["data"][0]
        assert trade["requestedBy"] == teammate.id
        assert trade["team1Grade"] == "B"
        assert trade["analysis"] == {}

    def test_league_trade_analyses_requires_membership(self, client, real_service, db, auth_headers):
        other = League(sleeper_league_id="other-league", name="Other League", season=2024)
        db.add(other)
        db.commit()

        response = client.get(f"/api/ai/leagues/{other.id}/trade-analyses", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Not a member of this league"


class TestAppEndpoints:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["docs"] == "/docs"
        assert data["health"] == "/health"

    def test_health_with_cache_disabled(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        services = response.json()["data"]["services"]
        assert services == {"database": "healthy", "redis": "disabled"}

    def test_health_recovers_after_redis_blip(self, client):
        cache = CacheService(enabled=True)
        cache._redis_client = MagicMock()
        cache._redis_client.ping = AsyncMock(side_effect=[ConnectionError("redis down"), True])

        with patch("fantasy_ai.main.cache_service", cache):
            down = client.get("/health")
            up = client.get("/health")

        assert down.status_code == 503
        assert down.json()["error"]["details"]["services"]["redis"] == "unhealthy"
        assert up.status_code == 200
        assert up.json()["data"]["services"] == {"database": "healthy", "redis": "healthy"}

    @patch("fantasy_ai.main.check_db_connection", return_value=False)
    def test_health_database_down(self, mock_check, client):
        response = client.get("/health")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "SERVICE_UNAVAILABLE"
        assert error["message"] == "Service health check failed: database"
        assert error["details"]["services"]["database"] == "unhealthy"

    def test_unknown_route(self, client):
        response = client.get("/api/ai/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Route GET /api/ai/nothing-here not found"
