from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import store
from ..auth.dependencies import get_tenant
from ..database import db_session
from ..rate_limit import RateLimit
from ..schemas import CommentCreate, CommentRead, RatingCreate, RatingSummary
from ..tenancy import TenantSchema

router = APIRouter(tags=["public"])


def _require_page_id(page_id: Optional[str]) -> str:
    if page_id is None or not page_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="A valid pageId query parameter is required.")
    return page_id


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.get("/comments", response_model=List[CommentRead], dependencies=[Depends(RateLimit("read"))])
def list_comments(
    page_id: Optional[str] = Query(None, alias="pageId"),
    tenant: TenantSchema = Depends(get_tenant),
) -> List[CommentRead]:
    """Comments for one game, newest first."""
    page_id = _require_page_id(page_id)
    with db_session() as session:
        rows = store.list_comments(session, tenant, page_id)
    return [CommentRead.model_validate(r) for r in rows]


@router.post("/comments", response_model=CommentRead, status_code=201,
             dependencies=[Depends(RateLimit("comment"))])
def submit_comment(
    body: CommentCreate,
    tenant: TenantSchema = Depends(get_tenant),
) -> CommentRead:
    with db_session() as session:
        if not store.game_exists(session, tenant, body.page_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found.")
        row = store.insert_comment(
            session,
            tenant,
            page_id=body.page_id,
            name=body.name,
            text=body.text,
            email=body.email,
            added_by_admin=False,
        )
    return CommentRead.model_validate(row)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

@router.get("/ratings", response_model=RatingSummary, dependencies=[Depends(RateLimit("read"))])
def get_ratings(
    page_id: Optional[str] = Query(None, alias="pageId"),
    tenant: TenantSchema = Depends(get_tenant),
) -> RatingSummary:
    page_id = _require_page_id(page_id)
    with db_session() as session:
        stats = store.rating_stats(session, tenant, page_id)
    return RatingSummary(count=stats.count, average=stats.average)


@router.post("/ratings", response_model=RatingSummary, status_code=201,
             dependencies=[Depends(RateLimit("rating"))])
def submit_rating(
    body: RatingCreate,
    tenant: TenantSchema = Depends(get_tenant),
) -> RatingSummary:
    """Record a rating and return the game's refreshed count and average."""
    with db_session() as session:
        if not store.game_exists(session, tenant, body.page_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found.")
        store.add_rating(session, tenant, body.page_id, body.rating)
        stats = store.rating_stats(session, tenant, body.page_id)
    return RatingSummary(count=stats.count, average=stats.average)
