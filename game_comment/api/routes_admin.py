from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from .. import store
from ..auth.dependencies import get_app_settings, get_current_admin, get_tenant
from ..config import Settings
from ..database import db_session
from ..models import AdminUser
from ..schemas import (
    CommentRead,
    GameOverview,
    ManualCommentCreate,
    MessageResponse,
    RatingsUpdateResponse,
    parse_rating_counts,
)
from ..tenancy import TenantSchema

log = logging.getLogger("game_comment.admin")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/comments", response_model=Dict[str, GameOverview])
def all_game_data(
    _admin: AdminUser = Depends(get_current_admin),
    tenant: TenantSchema = Depends(get_tenant),
) -> Dict[str, GameOverview]:
    """Every game with its rating distribution and full comment list, keyed by address."""
    with db_session() as session:
        overview = store.game_overview(session, tenant)
    return {address: GameOverview.model_validate(data) for address, data in overview.items()}


@router.put("/ratings/{page_id}", response_model=RatingsUpdateResponse)
def update_ratings(
    page_id: str,
    body: Any = Body(...),
    admin: AdminUser = Depends(get_current_admin),
    tenant: TenantSchema = Depends(get_tenant),
    settings: Settings = Depends(get_app_settings),
) -> RatingsUpdateResponse:
    """
    Overwrite a game's rating distribution.

    Body: ``{"1": n1, "2": n2, "3": n3, "4": n4, "5": n5}``. Existing ratings
    are replaced by exactly that many placeholder rows per value, in one
    transaction.
    """
    try:
        counts = parse_rating_counts(body, max_count=settings.max_rating_count)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    with db_session() as session:
        if not store.game_exists(session, tenant, page_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found.")
        store.replace_rating_counts(session, tenant, page_id, counts)

    with db_session() as session:
        stats = store.rating_stats(session, tenant, page_id)

    log.info("Ratings replaced - page: %s, counts: %s, admin: %s", page_id, counts, admin.username)
    return RatingsUpdateResponse(message="Ratings updated successfully.", ratings=stats.buckets)


@router.delete("/comments/{page_id}/{comment_id}", response_model=MessageResponse)
def delete_comment(
    page_id: str,
    comment_id: int,
    admin: AdminUser = Depends(get_current_admin),
    tenant: TenantSchema = Depends(get_tenant),
) -> MessageResponse:
    with db_session() as session:
        deleted = store.delete_comment(session, tenant, page_id, comment_id)
    if not deleted:
        log.info("Comment not found for deletion - page: %s, comment: %s", page_id, comment_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail="No comment with that id for this game.")
    log.info("Comment deleted - page: %s, comment: %s, admin: %s", page_id, comment_id, admin.username)
    return MessageResponse(message="Comment deleted successfully.")


@router.post("/comments/manual", response_model=CommentRead, status_code=201)
def add_manual_comment(
    body: ManualCommentCreate,
    admin: AdminUser = Depends(get_current_admin),
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
            added_by_admin=True,
            created_at=body.timestamp,
        )
    log.info(
        "Manual comment added - page: %s, timestamp: %s, admin: %s",
        body.page_id, row["timestamp"], admin.username,
    )
    return CommentRead.model_validate(row)
