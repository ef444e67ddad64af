# client/__init__.py
"""
Python client for the marketplace API.

ClientStore holds auth and search state on top of MarketplaceAPI (HTTP)
and TokenStorage (the persisted bearer token).
"""

from .api import ApiResult, MarketplaceAPI
from .storage import TokenStorage
from .store import AuthStatus, ClientStore, SearchFilters, create_store

__all__ = [
    "ApiResult",
    "AuthStatus",
    "ClientStore",
    "MarketplaceAPI",
    "SearchFilters",
    "TokenStorage",
    "create_store",
]
