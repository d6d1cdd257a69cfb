"""
Tests for tenant isolation: prefixed tables, the shared admin table and
per-tenant token verification.

Run with: pytest tests/test_tenancy.py -v
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError
from sqlalchemy import func, inspect, select

from game_comment import main as main_module
from game_comment.config import Settings
from game_comment.database import db_session, engine
from game_comment.main import create_app
from game_comment.models import AdminUser
from game_comment.store import add_game
from game_comment.tenancy import TenantSchema, drop_schema, get_tenant_schema


@pytest.fixture
def arcade_app():
    """A second tenant sharing the same database."""
    app_b = create_app(Settings(project_prefix="arcade"))
    tenant_b = app_b.state.tenant
    with db_session() as session:
        add_game(session, tenant_b, "aaa", "Arcade Game A")
    yield app_b
    drop_schema(engine, tenant_b)
    with db_session() as session:
        for admin in session.execute(
            select(AdminUser).where(AdminUser.project_id == "arcade")
        ).scalars():
            session.delete(admin)


# ---------------------------------------------------------------------------
# Table naming
# ---------------------------------------------------------------------------

def test_tables_are_named_after_prefix():
    tenant = get_tenant_schema("game_comment")
    assert tenant.games.name == "game_comment_games"
    assert tenant.comments.name == "game_comment_comments"
    assert tenant.ratings.name == "game_comment_ratings"
    assert tenant.rating_stats_name == "game_comment_rating_stats"


def test_schema_is_built_once_per_prefix():
    assert TenantSchema.for_prefix("game_comment") is get_tenant_schema("game_comment")


def test_invalid_prefix_is_refused():
    with pytest.raises(ValueError):
        get_tenant_schema("games; DROP TABLE x")


def test_bootstrap_created_tables_and_view():
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    assert {"game_admins_users", "game_comment_games", "game_comment_comments", "game_comment_ratings"} <= tables
    assert "game_comment_rating_stats" in inspector.get_view_names()


# ---------------------------------------------------------------------------
# Configuration-validated prefixes
# ---------------------------------------------------------------------------

def test_unknown_prefix_is_rejected_at_startup():
    with pytest.raises(ValidationError):
        Settings(project_prefix="unlisted")


def test_malformed_prefix_is_rejected_even_when_listed():
    with pytest.raises(ValidationError):
        Settings(project_prefix="Bad-Prefix", known_tenants=["Bad-Prefix"])


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

def test_each_tenant_gets_its_own_admin(arcade_app):
    with db_session() as session:
        count = session.execute(
            select(func.count(AdminUser.id)).where(AdminUser.username == "admin")
        ).scalar_one()
    assert count == 2


def test_data_does_not_leak_between_tenants(client, arcade_app):
    client_b = TestClient(arcade_app)
    assert client.post("/comments", json={"pageId": "aaa", "name": "A", "text": "tenant a"}).status_code == 201
    assert client_b.post("/comments", json={"pageId": "aaa", "name": "B", "text": "tenant b"}).status_code == 201

    assert [c["text"] for c in client.get("/comments", params={"pageId": "aaa"}).json()] == ["tenant a"]
    assert [c["text"] for c in client_b.get("/comments", params={"pageId": "aaa"}).json()] == ["tenant b"]


def test_token_from_one_tenant_fails_in_another(client, admin_headers, arcade_app):
    client_b = TestClient(arcade_app)
    # Same signing secret, so only the tenant-scoped lookup can reject it.
    assert client_b.get("/admin/protected", headers=admin_headers).status_code == 401

    login_b = client_b.post("/admin/login", json={"username": "admin", "password": "admin123"})
    assert login_b.status_code == 200
    headers_b = {"Authorization": f"Bearer {login_b.json()['token']}"}
    assert client_b.get("/admin/protected", headers=headers_b).status_code == 200
    assert client.get("/admin/protected", headers=headers_b).status_code == 401


def test_each_app_owns_its_limiter(client, arcade_app):
    client_b = TestClient(arcade_app)
    body = {"pageId": "aaa", "name": "Bob", "text": "fun"}
    assert client.post("/comments", json=body).status_code == 201
    assert client_b.post("/comments", json=body).status_code == 201


# ---------------------------------------------------------------------------
# Best-effort bootstrap
# ---------------------------------------------------------------------------

def test_bootstrap_failure_does_not_abort_startup(monkeypatch):
    def _fail(*args, **kwargs):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(main_module, "init_schema", _fail)
    app_b = create_app(Settings(project_prefix="ghost"))
    resp = TestClient(app_b).get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_missing_tables_surface_at_request_time():
    app_b = create_app(Settings(project_prefix="ghost"), run_bootstrap=False)
    client_b = TestClient(app_b, raise_server_exceptions=False)
    resp = client_b.get("/comments", params={"pageId": "aaa"})
    assert resp.status_code == 500
    assert resp.json() == {"message": "Internal server error."}
