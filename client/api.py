# client/api.py
"""
HTTP client for the marketplace API.

Wraps every endpoint the frontend uses and unwraps the server envelope
{"success": ..., "data": ...} into an ApiResult. Network failures come back
as unsuccessful results with network_error set; they never raise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001/api"
DEFAULT_TIMEOUT = 10.0


@dataclass
class ApiResult:
    """
    Outcome of one API call.

    status_code is None and network_error is True when the server was never
    reached; otherwise error carries the server's message for non-2xx answers.
    """

    success: bool
    data: Any = None
    error: str | None = None
    status_code: int | None = None
    network_error: bool = False


class MarketplaceAPI:
    """Client for the marketplace REST API."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        token_getter: Callable[[], str | None] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """
        token_getter returns the bearer token to send (usually
        TokenStorage.get_token); timeout is in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.token_getter = token_getter or (lambda: None)
        self.timeout = timeout
        self.session = session or requests.Session()

    # =========================================================
    # Low level HTTP helpers
    # =========================================================
    def _headers(self, json_body: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        token = self.token_getter()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict | None = None,
        json: Any = None,
        files: dict | None = None,
    ) -> ApiResult:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                files=files,
                headers=self._headers(json_body=json is not None),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("API request %s %s failed: %s", method, url, exc)
            return ApiResult(success=False, error="Network error", network_error=True)

        try:
            raw = response.json()
        except ValueError:
            raw = None

        if not response.ok:
            message = None
            if isinstance(raw, dict):
                message = raw.get("error") or raw.get("message")
            return ApiResult(
                success=False,
                error=message or f"Request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        # {success, data} -> data
        data = raw.get("data") if isinstance(raw, dict) and "data" in raw else raw
        return ApiResult(success=True, data=data, status_code=response.status_code)

    # =========================================================
    # Authentication
    # =========================================================
    def login(self, email: str, password: str) -> ApiResult:
        return self.request("POST", "/auth/login", json={"email": email, "password": password})

    def register(self, email: str, password: str, username: str) -> ApiResult:
        return self.request(
            "POST", "/auth/register", json={"email": email, "password": password, "username": username}
        )

    def get_current_user(self) -> ApiResult:
        return self.request("GET", "/auth/me")

    # =========================================================
    # Services
    # =========================================================
    def get_services(self, query: str = "", params: dict | None = None) -> ApiResult:
        """`params` are already in wire names (minPrice, maxPrice, ...)."""
        all_params: dict = dict(params or {})
        if query:
            all_params["q"] = query
        return self.request("GET", "/services", params=all_params or None)

    def get_service(self, service_id: str) -> ApiResult:
        return self.request("GET", f"/services/{service_id}")

    def get_seller(self, username: str) -> ApiResult:
        return self.request("GET", f"/services/seller/{username}")

    def create_service(self, service: dict) -> ApiResult:
        return self.request("POST", "/services", json=service)

    def update_service(self, service_id: str, changes: dict) -> ApiResult:
        return self.request("PUT", f"/services/{service_id}", json=changes)

    def delete_service(self, service_id: str) -> ApiResult:
        return self.request("DELETE", f"/services/{service_id}")

    def add_review(self, service_id: str, rating: int, comment: str | None = None) -> ApiResult:
        return self.request("POST", f"/services/{service_id}/reviews", json={"rating": rating, "comment": comment})

    # =========================================================
    # User profile
    # =========================================================
    def update_profile(self, profile: dict) -> ApiResult:
        return self.request("PUT", "/users/profile", json=profile)

    def upload_avatar(self, filename: str, content: bytes, content_type: str = "image/png") -> ApiResult:
        # Multipart: requests sets the boundary header itself
        return self.request("POST", "/users/avatar", files={"avatar": (filename, content, content_type)})

    def close(self) -> None:
        self.session.close()
