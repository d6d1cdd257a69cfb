"""
rate_limit.py — Per-page request admission for public endpoints
===============================================================
Fixed-window counters keyed by ``{client address}-{page key}``, one window
set per route class ("comment", "rating", "read", "login"). The page key is
``page-{pageId}`` when the request names a page (JSON body for writes, query
string for reads) and ``global`` otherwise.

The limiter is built by the application factory and stored on
``app.state.limiter``; routes declare ``Depends(RateLimit("comment"))``.
Counters live in slowapi's in-memory ``limits`` storage, which serialises
access with its own lock.
"""
from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Tuple

from fastapi import HTTPException, Request, status
from limits import RateLimitItem, RateLimitItemPerSecond
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import Settings

log = logging.getLogger("game_comment.rate_limit")

RATE_LIMIT_MESSAGES: Dict[str, str] = {
    "comment": "Comment limit reached for this page, please try again later.",
    "rating": "Rating limit reached for this page, please try again later.",
    "read": "Too many requests, please try again later.",
    "login": "Too many login attempts, please try again later.",
}


class PageRateLimiter:
    """Fixed-window limiter keyed by client address and page."""

    def __init__(
        self,
        quotas: Dict[str, int],
        window_seconds: int = 60,
        enabled: bool = True,
        storage_uri: str = "memory://",
    ) -> None:
        self._limiter = Limiter(
            key_func=get_remote_address,
            strategy="fixed-window",
            storage_uri=storage_uri,
            enabled=enabled,
        )
        self.window_seconds = window_seconds
        self._items: Dict[str, RateLimitItem] = {
            scope: RateLimitItemPerSecond(amount, window_seconds)
            for scope, amount in quotas.items()
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "PageRateLimiter":
        return cls(
            quotas={
                "comment": settings.comment_max_requests,
                "rating": settings.rating_max_requests,
                "read": settings.read_max_requests,
                "login": settings.login_max_requests,
            },
            window_seconds=settings.rate_limit_window_seconds,
            enabled=settings.rate_limit_enabled,
        )

    @property
    def enabled(self) -> bool:
        return self._limiter.enabled

    def quota(self, scope: str) -> int:
        return self._items[scope].amount

    def hit(self, scope: str, key: str) -> Tuple[bool, int]:
        """
        Count one request for *key* under *scope*.

        Returns ``(allowed, retry_after_seconds)``; ``retry_after_seconds`` is
        0 when the request is allowed.
        """
        if not self.enabled:
            return True, 0
        item = self._items[scope]
        strategy = self._limiter.limiter
        if strategy.hit(item, scope, key):
            return True, 0
        reset_at, _remaining = strategy.get_window_stats(item, scope, key)
        return False, max(1, int(reset_at - time.time()) + 1)

    def reset(self) -> None:
        """Clear every window."""
        self._limiter.reset()


async def page_key(request: Request) -> Optional[str]:
    """The pageId a request refers to, from the JSON body for writes or the query for reads."""
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        try:
            body = await request.json()
        except ValueError:
            return None
        page_id = body.get("pageId") if isinstance(body, dict) else None
    else:
        page_id = request.query_params.get("pageId")
    if page_id is None or page_id == "" or isinstance(page_id, (dict, list)):
        return None
    return str(page_id)


class RateLimit:
    """FastAPI dependency enforcing the limiter's quota for one route class."""

    def __init__(self, scope: str) -> None:
        self.scope = scope

    async def __call__(self, request: Request) -> None:
        limiter: PageRateLimiter = request.app.state.limiter
        address = get_remote_address(request)
        page_id = await page_key(request)
        identifier = f"page-{page_id}" if page_id else "global"

        allowed, retry_after = limiter.hit(self.scope, f"{address}-{identifier}")
        if allowed:
            return

        log.warning(
            "Rate limit exceeded - address: %s, page: %s, path: %s",
            address,
            page_id or "N/A",
            request.url.path,
            extra={"address": address, "page_id": page_id, "path": request.url.path, "scope": self.scope},
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=RATE_LIMIT_MESSAGES.get(self.scope, RATE_LIMIT_MESSAGES["read"]),
            headers={"Retry-After": str(retry_after)},
        )
