"""Client-side view of the board kept in sync with the push channel"""
from .cache import QueryCache, CacheEntry
from .session import ViewerSession
from .client import ViewerClient, ViewerClientError

__all__ = ["QueryCache", "CacheEntry", "ViewerSession", "ViewerClient", "ViewerClientError"]
