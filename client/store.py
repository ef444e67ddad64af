# client/store.py
"""
Client state store: authentication, search text and filters.

- init() revalidates a stored token against GET /auth/me (clearing it when
  the server rejects it), then loads the first service list.
- close() tears the store down.
- Every change to the search text or the filters re-fetches the list. Each
  fetch carries a sequence number and only the latest one is applied, so a
  slow stale response never overwrites a newer result.
"""

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from .api import ApiResult, MarketplaceAPI
from .storage import TokenStorage

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = "Unable to connect to the database. Please ensure your backend is running."

# Statuses that mean "this token is no good", as opposed to a server hiccup
_REJECTED_STATUSES = {401, 403, 404}


class AuthStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PENDING = "pending"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class SearchFilters:
    """Selections made in the filter panel."""

    category: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    rating: float | None = None

    def to_params(self) -> dict:
        """Query-string parameters, in the server's names, for the set filters only."""
        params: dict = {}
        if self.category:
            params["category"] = self.category
        if self.min_price is not None:
            params["minPrice"] = self.min_price
        if self.max_price is not None:
            params["maxPrice"] = self.max_price
        if self.rating is not None:
            params["rating"] = self.rating
        return params

    def without(self, name: str) -> "SearchFilters":
        """Drop one filter (the chip's "x" button); "price" drops both bounds."""
        if name == "price":
            return replace(self, min_price=None, max_price=None)
        return replace(self, **{name: None})

    @property
    def active_count(self) -> int:
        return len(self.to_params())


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(_as_float(value))


def normalize_service(item: dict) -> dict:
    """Coerce numbers that older servers sent as strings ("450.00")."""
    service = dict(item)
    service["id"] = str(service.get("id", ""))
    service["price"] = _as_float(service.get("price"))
    service["rating"] = _as_float(service.get("rating"))
    reviews = service.get("reviews", service.get("reviews_count"))
    service["reviews"] = _as_int(reviews) if not isinstance(reviews, list) else len(reviews)
    seller = dict(service.get("seller") or {})
    seller["rating"] = _as_float(seller.get("rating", service["rating"]))
    service["seller"] = seller
    return service


Listener = Callable[["ClientStore"], None]


class ClientStore:
    """Holds auth, search and filter state and keeps the service list in sync."""

    def __init__(
        self,
        api: MarketplaceAPI,
        storage: TokenStorage,
        *,
        demo_services: list[dict] | None = None,
    ) -> None:
        """
        The api client should read its bearer token from `storage`
        (create_store wires that up).

        demo_services is an explicit opt-in listing shown when the backend
        cannot be reached; without it a failed fetch is reported as a failure.
        """
        self.api = api
        self.storage = storage
        self.demo_services = demo_services

        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

        # Auth
        self.user: dict | None = None
        self.status = AuthStatus.UNAUTHENTICATED
        self.auth_error: str | None = None

        # Search
        self.query = ""
        self.filters = SearchFilters()
        self.services: list[dict] = []
        self.is_loading = False
        self.error: str | None = None
        self.connection_error = False

        self._latest_request = 0
        self._loaded_once = False

    # =========================================================
    # Observers
    # =========================================================
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener failed")

    # =========================================================
    # Lifecycle
    # =========================================================
    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED and self.user is not None

    @property
    def token(self) -> str | None:
        return self.storage.get_token()

    def init(self, fetch_services: bool = True) -> None:
        """Revalidate the stored token, then load the service list."""
        self.revalidate()
        if fetch_services:
            self.refresh()

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()
        self.api.close()

    # =========================================================
    # Authentication
    # =========================================================
    def revalidate(self) -> bool:
        """Trust a stored token only after the server confirms it."""
        if not self.storage.get_token():
            self._set_auth(None, AuthStatus.UNAUTHENTICATED)
            return False

        result = self.api.get_current_user()
        if result.success and isinstance(result.data, dict):
            self.storage.save_user(result.data)
            self._set_auth(result.data, AuthStatus.AUTHENTICATED)
            return True

        if result.network_error or result.status_code not in _REJECTED_STATUSES:
            # Server unreachable: keep the token for a later retry
            logger.warning("Could not revalidate stored token: %s", result.error)
        else:
            logger.info("Stored token rejected (%s), clearing it", result.status_code)
            self.storage.clear()
        self._set_auth(None, AuthStatus.UNAUTHENTICATED)
        return False

    def login(self, email: str, password: str) -> bool:
        return self._authenticate(lambda: self.api.login(email, password))

    def register(self, email: str, password: str, username: str) -> bool:
        return self._authenticate(lambda: self.api.register(email, password, username))

    def logout(self) -> None:
        self.storage.clear()
        self._set_auth(None, AuthStatus.UNAUTHENTICATED)

    def _authenticate(self, call: Callable[[], ApiResult]) -> bool:
        self._set_auth(None, AuthStatus.PENDING)

        result = call()
        data = result.data if isinstance(result.data, dict) else {}
        token, user = data.get("token"), data.get("user")
        if result.success and token and isinstance(user, dict):
            self.storage.save(token, user)
            self._set_auth(user, AuthStatus.AUTHENTICATED)
            return True

        # No offline fallback: a failed call is a failed login
        self._set_auth(None, AuthStatus.UNAUTHENTICATED, error=result.error or "Authentication failed")
        return False

    def _set_auth(self, user: dict | None, status: AuthStatus, error: str | None = None) -> None:
        with self._lock:
            self.user = user
            self.status = status
            self.auth_error = error
        self._notify()

    # =========================================================
    # Search and filters
    # =========================================================
    def set_query(self, query: str) -> None:
        query = query or ""
        with self._lock:
            if query == self.query:
                return
            self.query = query
        self.refresh()

    def set_filters(self, filters: SearchFilters) -> None:
        with self._lock:
            if filters == self.filters:
                return
            self.filters = filters
        self.refresh()

    def remove_filter(self, name: str) -> None:
        self.set_filters(self.filters.without(name))

    def clear_filters(self) -> None:
        self.set_filters(SearchFilters())

    def refresh(self) -> bool:
        """Fetch the service list for the current query and filters.

        Returns False when the response was stale (a newer fetch started
        meanwhile) or the fetch failed.
        """
        with self._lock:
            self._latest_request += 1
            request_id = self._latest_request
            query, params = self.query, self.filters.to_params()
            self.is_loading = True
        self._notify()

        result = self.api.get_services(query, params)

        with self._lock:
            if request_id != self._latest_request:
                logger.debug("Dropping stale service list response #%d", request_id)
                return False
            self.is_loading = False
            applied = self._apply_services(result)
        self._notify()
        return applied

    def _apply_services(self, result: ApiResult) -> bool:
        if result.success:
            self.services = [normalize_service(s) for s in (result.data or [])]
            self.error = None
            self.connection_error = False
            self._loaded_once = True
            return True

        logger.error("Failed to fetch services: %s", result.error)
        if self.demo_services is not None:
            self.services = [normalize_service(s) for s in self.demo_services]
            self.error = f"Showing demo data: {result.error}"
        elif not self._loaded_once:
            # Nothing was ever loaded: the "cannot reach backend" screen
            self.services = []
            self.error = CONNECTION_ERROR_MESSAGE
            self.connection_error = True
        else:
            # Keep the previous results, show an inline banner
            self.error = result.error or "Failed to fetch services"
        return False

    # =========================================================
    # Listing management (keeps the local list in step with the server)
    # =========================================================
    def create_service(self, service: dict) -> ApiResult:
        result = self.api.create_service(service)
        if result.success and isinstance(result.data, dict):
            with self._lock:
                self.services = [normalize_service(result.data)] + self.services
            self._notify()
        return result

    def update_service(self, service_id: str, changes: dict) -> ApiResult:
        result = self.api.update_service(service_id, changes)
        if result.success and isinstance(result.data, dict):
            updated = normalize_service(result.data)
            with self._lock:
                self.services = [updated if s["id"] == str(service_id) else s for s in self.services]
            self._notify()
        return result

    def delete_service(self, service_id: str) -> ApiResult:
        result = self.api.delete_service(service_id)
        if result.success:
            with self._lock:
                self.services = [s for s in self.services if s["id"] != str(service_id)]
            self._notify()
        return result


def create_store(
    base_url: str,
    storage: TokenStorage | None = None,
    *,
    timeout: float = 10.0,
    demo_services: list[dict] | None = None,
) -> ClientStore:
    """Wire an API client and a store around one token storage."""
    storage = storage or TokenStorage()
    api = MarketplaceAPI(base_url=base_url, token_getter=storage.get_token, timeout=timeout)
    return ClientStore(api, storage, demo_services=demo_services)
