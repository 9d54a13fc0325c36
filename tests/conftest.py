"""
Shared fixtures. Environment is pinned before any fantasy_ai import so the
settings singleton and the database engine pick up the test values.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CACHE_ENABLED"] = "false"
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["GEMINI_API_KEY"] = ""
os.environ["DEFAULT_AI_PROVIDER"] = ""
os.environ["AI_SERVICE_URL"] = "http://proxy.test"
os.environ["MCP_SERVER_URL"] = "http://mcp.test"

import pytest
from fastapi.testclient import TestClient

from fantasy_ai.core.auth import create_token
from fantasy_ai.core.database import Base, SessionLocal, engine
from fantasy_ai.models import database_models  # noqa: F401
from fantasy_ai.models.database_models import League, LeagueRole, User, UserLeague
from fantasy_ai.services.cache_service import CacheService


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = User(
        email="manager@example.com",
        display_name="Test Manager",
        sleeper_user_id="sleeper-user-1",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def league(db, user):
    league = League(sleeper_league_id="sleeper-league-1", name="Test League", season=2024, total_rosters=12)
    db.add(league)
    db.commit()
    db.add(UserLeague(user_id=user.id, league_id=league.id, role=LeagueRole.OWNER, sleeper_roster_id=1))
    db.commit()
    db.refresh(league)
    return league


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user.id, user.email)}"}


@pytest.fixture
def client():
    from fantasy_ai.main import app

    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def memory_cache():
    """An enabled cache that never touches Redis"""
    cache = CacheService(enabled=True)
    cache._redis_client = None
    cache._redis_available = False
    return cache
