"""
store.py — Tenant-scoped queries for games, comments and ratings
================================================================
Every function takes an open session and the caller's TenantSchema, so the
same code serves any tenant. Callers own the transaction (see
``database.db_session``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session

from .tenancy import TenantSchema

RATING_VALUES = (1, 2, 3, 4, 5)

# Largest id a BIGINT / SQLite INTEGER column can hold.
MAX_ROW_ID = 2**63 - 1


@dataclass
class RatingStats:
    """Aggregate over a game's ratings."""

    count: int = 0
    average: float = 0.0
    buckets: Dict[str, int] = field(default_factory=lambda: {str(v): 0 for v in RATING_VALUES})


def _comment_columns(tenant: TenantSchema):
    c = tenant.comments.c
    return (
        c.id,
        c.name,
        c.email,
        c.text,
        c.added_by_admin,
        c.created_at.label("timestamp"),
    )


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------

def game_exists(session: Session, tenant: TenantSchema, page_id: str) -> bool:
    g = tenant.games
    row = session.execute(
        select(g.c.id).where(g.c.address_bar == page_id)
    ).first()
    return row is not None


def add_game(session: Session, tenant: TenantSchema, address_bar: str, title: str) -> bool:
    """Insert a game unless its address already exists. Returns True when inserted."""
    if game_exists(session, tenant, address_bar):
        return False
    session.execute(insert(tenant.games).values(address_bar=address_bar, title=title))
    return True


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

def list_comments(session: Session, tenant: TenantSchema, page_id: str) -> List[Dict[str, Any]]:
    c = tenant.comments.c
    rows = session.execute(
        select(*_comment_columns(tenant))
        .where(c.game_address_bar == page_id)
        .order_by(c.created_at.desc(), c.id.desc())
    ).mappings().all()
    return [dict(r) for r in rows]


def insert_comment(
    session: Session,
    tenant: TenantSchema,
    page_id: str,
    name: str,
    text: str,
    email: Optional[str] = None,
    added_by_admin: bool = False,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    values: Dict[str, Any] = {
        "game_address_bar": page_id,
        "name": name,
        "email": email,
        "text": text,
        "added_by_admin": added_by_admin,
    }
    if created_at is not None:
        values["created_at"] = created_at
    row = session.execute(
        insert(tenant.comments).values(**values).returning(*_comment_columns(tenant))
    ).mappings().one()
    return dict(row)


def delete_comment(session: Session, tenant: TenantSchema, page_id: str, comment_id: int) -> bool:
    """Delete a comment only when it belongs to the given game. Returns False if no match."""
    if not 1 <= comment_id <= MAX_ROW_ID:
        return False
    c = tenant.comments.c
    result = session.execute(
        delete(tenant.comments).where(c.id == comment_id, c.game_address_bar == page_id)
    )
    return result.rowcount > 0


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

def add_rating(session: Session, tenant: TenantSchema, page_id: str, value: int) -> None:
    session.execute(insert(tenant.ratings).values(game_address_bar=page_id, rating=value))


def rating_stats(session: Session, tenant: TenantSchema, page_id: str) -> RatingStats:
    rs = tenant.rating_stats.c
    row = session.execute(
        select(
            rs.total_votes,
            func.round(rs.average_rating, 1).label("average"),
            *(rs[f"rating_{v}"] for v in RATING_VALUES),
        ).where(rs.game_address_bar == page_id)
    ).mappings().first()
    if row is None:
        return RatingStats()
    return RatingStats(
        count=int(row["total_votes"] or 0),
        average=float(row["average"] or 0),
        buckets={str(v): int(row[f"rating_{v}"] or 0) for v in RATING_VALUES},
    )


def replace_rating_counts(
    session: Session,
    tenant: TenantSchema,
    page_id: str,
    counts: Mapping[int, int],
) -> None:
    """
    Overwrite a game's ratings so the per-value counts equal *counts*.

    Existing rows are deleted and ``counts[v]`` placeholder rows are inserted
    for each value. The rows carry nothing but the game and value; they exist
    only so the aggregates match the requested distribution. Runs inside the
    caller's transaction, so readers never observe the empty intermediate
    state.
    """
    r = tenant.ratings
    session.execute(delete(r).where(r.c.game_address_bar == page_id))
    rows = [
        {"game_address_bar": page_id, "rating": value}
        for value in RATING_VALUES
        for _ in range(counts.get(value, 0))
    ]
    if rows:
        session.execute(insert(r), rows)


# ---------------------------------------------------------------------------
# Admin overview
# ---------------------------------------------------------------------------

def game_overview(session: Session, tenant: TenantSchema) -> Dict[str, Dict[str, Any]]:
    """Every game with its rating buckets and comments (newest first), keyed by address."""
    g = tenant.games.c
    rs = tenant.rating_stats
    games = session.execute(
        select(
            g.address_bar,
            g.title,
            *(func.coalesce(rs.c[f"rating_{v}"], 0).label(f"rating_{v}") for v in RATING_VALUES),
        )
        .select_from(tenant.games.outerjoin(rs, g.address_bar == rs.c.game_address_bar))
        .order_by(g.title)
    ).mappings().all()

    c = tenant.comments.c
    comments = session.execute(
        select(c.game_address_bar, *_comment_columns(tenant))
        .order_by(c.created_at.desc(), c.id.desc())
    ).mappings().all()

    by_game: Dict[str, List[Dict[str, Any]]] = {}
    for comment in comments:
        by_game.setdefault(comment["game_address_bar"], []).append(dict(comment))

    result: Dict[str, Dict[str, Any]] = {}
    for game in games:
        result[game["address_bar"]] = {
            "title": game["title"],
            "ratings": {str(v): int(game[f"rating_{v}"]) for v in RATING_VALUES},
            "comments": by_game.get(game["address_bar"], []),
        }
    return result
