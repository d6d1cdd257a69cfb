"""
Tests for public rating submission and aggregate stats.

Run with: pytest tests/test_ratings.py -v
"""
from __future__ import annotations

import pytest

from game_comment import store
from game_comment.database import db_session
from game_comment.main import app


def test_stats_for_unrated_game_are_zero(client):
    resp = client.get("/ratings", params={"pageId": "aaa"})
    assert resp.status_code == 200
    assert resp.json() == {"count": 0, "average": 0.0}


def test_submit_rating_returns_updated_stats(client):
    resp = client.post("/ratings", json={"pageId": "aaa", "rating": 4})
    assert resp.status_code == 201
    assert resp.json() == {"count": 1, "average": 4.0}


def test_second_rating_within_window_is_rate_limited(client):
    assert client.post("/ratings", json={"pageId": "aaa", "rating": 4}).status_code == 201
    resp = client.post("/ratings", json={"pageId": "aaa", "rating": 5})
    assert resp.status_code == 429
    assert "Rating limit" in resp.json()["message"]


def test_average_is_rounded_to_one_decimal(client):
    for value in (5, 4, 4):
        app.state.limiter.reset()
        client.post("/ratings", json={"pageId": "bbb", "rating": value})
    resp = client.get("/ratings", params={"pageId": "bbb"})
    assert resp.json() == {"count": 3, "average": 4.3}


def test_n_submissions_give_count_n_and_matching_buckets(client, tenant):
    submitted = [1, 5, 5, 3, 2, 5, 4]
    for value in submitted:
        app.state.limiter.reset()
        assert client.post("/ratings", json={"pageId": "ccc", "rating": value}).status_code == 201

    with db_session() as session:
        stats = store.rating_stats(session, tenant, "ccc")
    assert stats.count == len(submitted)
    assert sum(stats.buckets.values()) == len(submitted)
    assert stats.buckets == {str(v): submitted.count(v) for v in range(1, 6)}


@pytest.mark.parametrize("rating", [0, 6, 3.5, 6.0, "3", True, None])
def test_out_of_domain_ratings_are_rejected(client, rating):
    resp = client.post("/ratings", json={"pageId": "aaa", "rating": rating})
    assert resp.status_code == 400
    assert resp.json()["message"] == "rating must be an integer between 1 and 5"


def test_integral_float_rating_is_accepted(client):
    resp = client.post("/ratings", json={"pageId": "aaa", "rating": 4.0})
    assert resp.status_code == 201
    assert resp.json() == {"count": 1, "average": 4.0}


def test_missing_rating_is_rejected(client):
    resp = client.post("/ratings", json={"pageId": "aaa"})
    assert resp.status_code == 400
    assert "rating" in resp.json()["message"]


def test_rating_for_unknown_game_is_not_found(client):
    resp = client.post("/ratings", json={"pageId": "missing", "rating": 3})
    assert resp.status_code == 404
    assert resp.json() == {"message": "Game not found."}


def test_get_ratings_requires_page_id(client):
    resp = client.get("/ratings")
    assert resp.status_code == 400
