"""
tenancy.py — Per-tenant table namespace
=======================================
Each deployment ("tenant") owns its own games, comments and ratings tables,
named ``{prefix}_games`` and so on, plus a ``{prefix}_rating_stats`` view.
The admin identity table is shared and discriminated by ``project_id``.

The prefix comes from validated process configuration and is interpolated
into DDL and table names; it never comes from a request.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    column,
    table,
    text,
)
from sqlalchemy.sql.expression import TableClause

from .config import TENANT_PREFIX_RE
from .database import Base
from . import models as _models  # noqa: F401  registers the admin table with Base

log = logging.getLogger("game_comment.tenancy")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TenantSchema:
    """Resolved tables for one tenant prefix."""

    prefix: str
    metadata: MetaData
    games: Table
    comments: Table
    ratings: Table
    rating_stats: TableClause

    @classmethod
    def for_prefix(cls, prefix: str) -> "TenantSchema":
        return get_tenant_schema(prefix)

    @property
    def rating_stats_name(self) -> str:
        return f"{self.prefix}_rating_stats"


@lru_cache
def get_tenant_schema(prefix: str) -> TenantSchema:
    """Build (once per prefix) the Core tables for a tenant."""
    if not TENANT_PREFIX_RE.match(prefix):
        raise ValueError(f"Invalid tenant prefix: {prefix!r}")

    metadata = MetaData()

    games = Table(
        f"{prefix}_games",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("address_bar", String(100), unique=True, nullable=False),
        Column("title", String(200), nullable=False),
        Column("created_at", DateTime, default=_utcnow),
        Column("updated_at", DateTime, default=_utcnow, onupdate=_utcnow),
    )

    comments = Table(
        f"{prefix}_comments",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("game_address_bar", String(100), nullable=False),
        Column("name", String(100), nullable=False),
        Column("email", String(254), nullable=True),
        Column("text", Text, nullable=False),
        Column("added_by_admin", Boolean, nullable=False, default=False),
        Column("created_at", DateTime, default=_utcnow),
        Index(f"idx_{prefix}_comments_game_address_bar", "game_address_bar"),
    )

    ratings = Table(
        f"{prefix}_ratings",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("game_address_bar", String(100), nullable=False),
        Column("rating", Integer, nullable=False),
        Column("created_at", DateTime, default=_utcnow),
        CheckConstraint("rating >= 1 AND rating <= 5", name=f"ck_{prefix}_ratings_range"),
        Index(f"idx_{prefix}_ratings_game_address_bar", "game_address_bar"),
    )

    # The view is created with raw DDL; queries address it as a lightweight table.
    rating_stats = table(
        f"{prefix}_rating_stats",
        column("game_address_bar"),
        column("total_votes"),
        column("average_rating"),
        *(column(f"rating_{value}") for value in range(1, 6)),
    )

    return TenantSchema(
        prefix=prefix,
        metadata=metadata,
        games=games,
        comments=comments,
        ratings=ratings,
        rating_stats=rating_stats,
    )


def _rating_stats_view_ddl(tenant: TenantSchema, dialect: str) -> str:
    buckets = ",\n".join(
        f"  COUNT(CASE WHEN rating = {value} THEN 1 END) AS rating_{value}"
        for value in range(1, 6)
    )
    select_sql = (
        "SELECT\n"
        "  game_address_bar,\n"
        "  COUNT(*) AS total_votes,\n"
        "  AVG(rating) AS average_rating,\n"
        f"{buckets}\n"
        f"FROM {tenant.ratings.name}\n"
        "GROUP BY game_address_bar"
    )
    if dialect == "postgresql":
        return f"CREATE OR REPLACE VIEW {tenant.rating_stats_name} AS\n{select_sql}"
    return f"CREATE VIEW IF NOT EXISTS {tenant.rating_stats_name} AS\n{select_sql}"


def init_schema(engine: Engine, tenant: TenantSchema) -> None:
    """Create the shared admin table and the tenant's tables and view. Idempotent."""
    Base.metadata.create_all(bind=engine)
    tenant.metadata.create_all(bind=engine)
    with engine.begin() as conn:
        conn.execute(text(_rating_stats_view_ddl(tenant, engine.dialect.name)))
    log.info("Schema ready for tenant %s", tenant.prefix)


def drop_schema(engine: Engine, tenant: TenantSchema) -> None:
    """Drop the tenant's view and tables. The shared admin table is left alone."""
    with engine.begin() as conn:
        conn.execute(text(f"DROP VIEW IF EXISTS {tenant.rating_stats_name}"))
    tenant.metadata.drop_all(bind=engine)
