"""
pytest configuration – point the service at a throwaway SQLite database
before anything imports it, seed games, and share one admin token.
"""
import os
import tempfile

_DB_PATH = os.path.join(tempfile.gettempdir(), f"game_comment_test_{os.getpid()}.db")
if os.path.exists(_DB_PATH):
    os.remove(_DB_PATH)

os.environ["GAME_COMMENT_DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["GAME_COMMENT_ENVIRONMENT"] = "development"
os.environ["GAME_COMMENT_PROJECT_PREFIX"] = "game_comment"
os.environ["GAME_COMMENT_KNOWN_TENANTS"] = '["game_comment", "arcade", "ghost"]'
os.environ["GAME_COMMENT_ADMIN_PASSWORD"] = "admin123"
os.environ["GAME_COMMENT_LOG_FORMAT"] = "text"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from game_comment.database import db_session, engine  # noqa: E402
from game_comment.main import app  # noqa: E402
from game_comment.store import add_game  # noqa: E402
from game_comment.tenancy import drop_schema  # noqa: E402

TEST_GAMES = [
    ("aaa", "Sample Game A"),
    ("bbb", "Sample Game B"),
    ("ccc", "Sample Game C"),
]


@pytest.fixture(autouse=True, scope="session")
def seeded_database():
    tenant = app.state.tenant
    with db_session() as session:
        for address, title in TEST_GAMES:
            add_game(session, tenant, address, title)
    yield
    drop_schema(engine, tenant)
    engine.dispose()
    if os.path.exists(_DB_PATH):
        os.remove(_DB_PATH)


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh rate-limit windows and no comments/ratings for every test."""
    tenant = app.state.tenant
    app.state.limiter.reset()
    with db_session() as session:
        session.execute(delete(tenant.comments))
        session.execute(delete(tenant.ratings))
    yield


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def tenant():
    return app.state.tenant


# Session-scoped admin token: login happens ONCE per test run
_session_token: str | None = None


@pytest.fixture(scope="session")
def admin_token() -> str:
    global _session_token
    if _session_token is None:
        client = TestClient(app)
        resp = client.post("/admin/login", json={"username": "admin", "password": "admin123"})
        assert resp.status_code == 200, f"Login failed: {resp.text}"
        _session_token = resp.json()["token"]
    return _session_token


@pytest.fixture
def admin_headers(admin_token) -> dict:
    return {"Authorization": f"Bearer {admin_token}"}
