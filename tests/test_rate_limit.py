"""
Tests for the fixed-window page rate limiter.

Run with: pytest tests/test_rate_limit.py -v
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from game_comment.config import Settings
from game_comment.main import create_app
from game_comment.rate_limit import PageRateLimiter


def _limiter(**quotas) -> PageRateLimiter:
    return PageRateLimiter(quotas=quotas or {"comment": 2}, window_seconds=60)


# ---------------------------------------------------------------------------
# Limiter component
# ---------------------------------------------------------------------------

class TestPageRateLimiter:
    def test_rejects_the_request_after_the_quota(self):
        limiter = _limiter(comment=2)
        assert limiter.hit("comment", "1.2.3.4-page-aaa") == (True, 0)
        assert limiter.hit("comment", "1.2.3.4-page-aaa") == (True, 0)
        allowed, retry_after = limiter.hit("comment", "1.2.3.4-page-aaa")
        assert not allowed
        assert 1 <= retry_after <= 61

    def test_keys_have_independent_windows(self):
        limiter = _limiter(comment=1)
        assert limiter.hit("comment", "1.2.3.4-page-aaa")[0]
        assert limiter.hit("comment", "1.2.3.4-page-bbb")[0]
        assert limiter.hit("comment", "5.6.7.8-page-aaa")[0]
        assert not limiter.hit("comment", "1.2.3.4-page-aaa")[0]

    def test_scopes_have_independent_windows(self):
        limiter = _limiter(comment=1, rating=1)
        assert limiter.hit("comment", "1.2.3.4-page-aaa")[0]
        assert limiter.hit("rating", "1.2.3.4-page-aaa")[0]

    def test_reset_clears_every_window(self):
        limiter = _limiter(comment=1)
        limiter.hit("comment", "k")
        assert not limiter.hit("comment", "k")[0]
        limiter.reset()
        assert limiter.hit("comment", "k")[0]

    def test_disabled_limiter_admits_everything(self):
        limiter = PageRateLimiter(quotas={"comment": 1}, enabled=False)
        assert all(limiter.hit("comment", "k")[0] for _ in range(5))

    def test_concurrent_hits_admit_exactly_the_quota(self):
        limiter = _limiter(comment=5)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: limiter.hit("comment", "1.2.3.4-page-aaa")[0], range(64)))
        assert results.count(True) == 5

    def test_limiters_do_not_share_state(self):
        first, second = _limiter(comment=1), _limiter(comment=1)
        first.hit("comment", "k")
        assert second.hit("comment", "k")[0]

    def test_built_from_settings(self):
        limiter = PageRateLimiter.from_settings(Settings(read_max_requests=7, login_max_requests=3))
        assert limiter.quota("read") == 7
        assert limiter.quota("login") == 3
        assert limiter.quota("comment") == 1
        assert limiter.window_seconds == 60


# ---------------------------------------------------------------------------
# Request keys
# ---------------------------------------------------------------------------

@pytest.fixture
def strict_client() -> TestClient:
    settings = Settings(read_max_requests=1, comment_max_requests=1)
    return TestClient(create_app(settings, run_bootstrap=False))


def test_reads_are_keyed_by_query_page(strict_client):
    assert strict_client.get("/comments", params={"pageId": "aaa"}).status_code == 200
    assert strict_client.get("/comments", params={"pageId": "aaa"}).status_code == 429
    assert strict_client.get("/comments", params={"pageId": "bbb"}).status_code == 200


def test_comment_and_rating_reads_share_the_read_window(strict_client):
    assert strict_client.get("/comments", params={"pageId": "aaa"}).status_code == 200
    assert strict_client.get("/ratings", params={"pageId": "aaa"}).status_code == 429


def test_requests_without_page_share_the_global_key(strict_client):
    assert strict_client.get("/comments").status_code == 400
    assert strict_client.get("/ratings").status_code == 429


def test_writes_are_keyed_by_body_page(strict_client):
    body = {"name": "Bob", "text": "fun"}
    assert strict_client.post("/comments", json={**body, "pageId": "aaa"}).status_code == 201
    assert strict_client.post("/comments", json={**body, "pageId": "bbb"}).status_code == 201
    assert strict_client.post("/comments", json={**body, "pageId": "aaa"}).status_code == 429


def test_rejected_request_is_logged(strict_client, caplog):
    strict_client.get("/comments", params={"pageId": "aaa"})
    with caplog.at_level("WARNING", logger="game_comment.rate_limit"):
        strict_client.get("/comments", params={"pageId": "aaa"})
    record = next(r for r in caplog.records if r.name == "game_comment.rate_limit")
    assert record.page_id == "aaa"
    assert record.path == "/comments"
    assert record.address == "testclient"


def test_next_window_admits_again():
    settings = Settings(comment_max_requests=2, rate_limit_window_seconds=1)
    client = TestClient(create_app(settings, run_bootstrap=False))
    body = {"pageId": "ccc", "name": "Bob", "text": "fun"}

    assert client.post("/comments", json=body).status_code == 201
    assert client.post("/comments", json=body).status_code == 201
    assert client.post("/comments", json=body).status_code == 429

    time.sleep(1.2)
    assert client.post("/comments", json=body).status_code == 201
