"""
Tests for bearer-token authentication and league role checks
"""
from datetime import timedelta

import jwt
import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from fantasy_ai.core.auth import (
    create_token,
    get_current_user,
    require_league_role,
    verify_token,
)
from fantasy_ai.core.config import settings
from fantasy_ai.core.errors import AuthenticationError
from fantasy_ai.core.responses import add_request_context, register_exception_handlers
from fantasy_ai.models.database_models import League, LeagueRole, UserLeague


@pytest.fixture
def auth_app():
    app = FastAPI()
    app.middleware("http")(add_request_context)
    register_exception_handlers(app)

    @app.get("/me")
    async def me(request: Request, user=Depends(get_current_user)):
        return {"id": user.id, "stateUser": request.state.user.id}

    @app.get("/leagues/{league_id}/commissioner")
    async def commissioner(membership=Depends(require_league_role(LeagueRole.OWNER, LeagueRole.CO_OWNER))):
        return {"role": membership.role.value}

    return TestClient(app)


class TestTokens:
    def test_create_and_verify_round_trip(self):
        token = create_token("user-1", "a@example.com")
        payload = verify_token(token)

        assert payload["userId"] == "user-1"
        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@example.com"
        assert payload["exp"] > payload["iat"]

    def test_expired_token(self):
        token = create_token("user-1", "a@example.com", expires_delta=timedelta(seconds=-5))

        with pytest.raises(AuthenticationError) as exc_info:
            verify_token(token)
        assert exc_info.value.message == "Token has expired"
        assert exc_info.value.status_code == 401

    def test_wrong_signature_is_invalid(self):
        token = jwt.encode({"userId": "user-1"}, "another-secret", algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            verify_token(token)
        assert exc_info.value.message == "Invalid token"

    def test_missing_secret_is_a_configuration_error(self, monkeypatch):
        monkeypatch.setattr(settings, "JWT_SECRET", None)

        with pytest.raises(RuntimeError):
            verify_token("anything")


class TestCurrentUser:
    def test_valid_token(self, auth_app, user, auth_headers):
        response = auth_app.get("/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"id": user.id, "stateUser": user.id}

    def test_missing_token(self, auth_app):
        response = auth_app.get("/me")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTHENTICATION_ERROR"
        assert body["error"]["message"] == "No token provided"
        assert body["metadata"]["requestId"].startswith("req_")

    def test_garbage_token(self, auth_app):
        response = auth_app.get("/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    def test_unknown_user(self, auth_app):
        token = create_token("missing-user", "ghost@example.com")
        response = auth_app.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "User not found"


class TestLeagueRoles:
    def test_owner_allowed(self, auth_app, league, auth_headers):
        response = auth_app.get(f"/leagues/{league.id}/commissioner", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"role": "owner"}

    def test_member_role_rejected(self, auth_app, db, user, league, auth_headers):
        membership = db.query(UserLeague).filter(UserLeague.user_id == user.id).first()
        membership.role = LeagueRole.MEMBER
        db.commit()

        response = auth_app.get(f"/leagues/{league.id}/commissioner", headers=auth_headers)

        assert response.status_code == 403
        body = response.json()
        assert body["error"]["code"] == "AUTHORIZATION_ERROR"
        assert body["error"]["message"] == "Role 'member' not authorized for this action"

    def test_non_member_rejected(self, auth_app, db, user, auth_headers):
        other = League(sleeper_league_id="other", name="Other League", season=2024)
        db.add(other)
        db.commit()

        response = auth_app.get(f"/leagues/{other.id}/commissioner", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Not a member of this league"
