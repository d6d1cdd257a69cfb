"""
client.py – Python client for the Game Comment API
==================================================
Thin httpx wrapper over the public and admin endpoints. ``login`` keeps the
returned token and sends it as a Bearer header on admin calls.

Environment variables
---------------------
GAME_COMMENT_API_URL – Base URL of the service (default: http://localhost:3000)
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import httpx

GAME_COMMENT_API_URL = os.getenv("GAME_COMMENT_API_URL", "http://localhost:3000")
_TIMEOUT = 10.0


class GameCommentAPIError(RuntimeError):
    """Raised for any non-2xx response; carries the status and server message."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GameCommentClient:
    def __init__(
        self,
        base_url: str = GAME_COMMENT_API_URL,
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.token = token
        self._http = http or httpx.Client(base_url=base_url, timeout=_TIMEOUT)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GameCommentClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- plumbing -----------------------------------------------------------

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            raise GameCommentAPIError(401, "Not logged in.")
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self._http.request(method, path, **kwargs)
        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = None
            message = body.get("message", resp.text) if isinstance(body, dict) else resp.text
            raise GameCommentAPIError(resp.status_code, message)
        return resp.json()

    # -- public -------------------------------------------------------------

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def get_comments(self, page_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/comments", params={"pageId": page_id})

    def submit_comment(self, page_id: str, name: str, text: str, email: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"pageId": page_id, "name": name, "text": text}
        if email is not None:
            payload["email"] = email
        return self._request("POST", "/comments", json=payload)

    def get_ratings(self, page_id: str) -> Dict[str, Any]:
        return self._request("GET", "/ratings", params={"pageId": page_id})

    def submit_rating(self, page_id: str, rating: int) -> Dict[str, Any]:
        return self._request("POST", "/ratings", json={"pageId": page_id, "rating": rating})

    # -- admin --------------------------------------------------------------

    def login(self, username: str, password: str) -> Dict[str, Any]:
        result = self._request("POST", "/admin/login", json={"username": username, "password": password})
        self.token = result["token"]
        return result

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/admin/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
            headers=self._auth_headers(),
        )

    def get_all_game_data(self) -> Dict[str, Any]:
        return self._request("GET", "/admin/comments", headers=self._auth_headers())

    def update_ratings(self, page_id: str, counts: Dict[int, int]) -> Dict[str, Any]:
        payload = {str(value): count for value, count in counts.items()}
        return self._request("PUT", f"/admin/ratings/{page_id}", json=payload, headers=self._auth_headers())

    def delete_comment(self, page_id: str, comment_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/admin/comments/{page_id}/{comment_id}", headers=self._auth_headers())

    def add_manual_comment(
        self,
        page_id: str,
        name: str,
        text: str,
        email: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"pageId": page_id, "name": name, "text": text}
        if email is not None:
            payload["email"] = email
        if timestamp is not None:
            payload["timestamp"] = timestamp
        return self._request("POST", "/admin/comments/manual", json=payload, headers=self._auth_headers())
