"""
Repository provider for dependency injection.

Owns the process-wide backend instances: one durable Cosmos backend shared by
every remote session, and one local backend per demo cache slot while a
session uses it. Each keeps its own snapshot feed, so subscribers only hear
about the data they can see.

Usage:
    from repositories.provider import backend_for

    backend = backend_for(principal)   # chosen once, when the session opens
    repo = IssueRepository(backend)
"""

import logging

from core.config import settings
from core.exceptions import BackendUnavailable
from db.local_cache import FileLocalCache, LocalCache, MemoryLocalCache
from repositories.cosmos_issue_backend import CosmosIssueBackend
from repositories.cosmos_user_repository import CosmosUserRepository
from repositories.local_issue_backend import LocalIssueBackend
from repositories.storage_backend import StorageBackend
from schemas.user import Principal

logger = logging.getLogger(__name__)

_remote_backend: CosmosIssueBackend | None = None
_local_cache: LocalCache | None = None
_local_backends: dict[str, LocalIssueBackend] = {}


# =============================================================================
# Configuration
# =============================================================================


def is_cosmos_enabled() -> bool:
    """Check if Cosmos DB is configured and enabled."""
    return settings.cosmos_configured


# =============================================================================
# Factory Functions
# =============================================================================


def get_local_cache() -> LocalCache:
    """Process-wide local cache (file-backed when LOCAL_CACHE_DIR is set)."""
    global _local_cache
    if _local_cache is None:
        if settings.LOCAL_CACHE_DIR:
            _local_cache = FileLocalCache(settings.LOCAL_CACHE_DIR)
            logger.info(f"Local cache stored in {settings.LOCAL_CACHE_DIR}")
        else:
            _local_cache = MemoryLocalCache()
            logger.info("Local cache kept in memory")
    return _local_cache


def get_remote_backend() -> CosmosIssueBackend:
    """The shared durable backend."""
    global _remote_backend
    if not is_cosmos_enabled():
        raise BackendUnavailable("Issue store is not configured. Set AZURE_COSMOS_ENDPOINT.")
    if _remote_backend is None:
        _remote_backend = CosmosIssueBackend()
    return _remote_backend


def get_local_backend(slot: str) -> LocalIssueBackend:
    """The local backend for one cache slot."""
    backend = _local_backends.get(slot)
    if backend is None:
        backend = LocalIssueBackend(get_local_cache(), slot)
        _local_backends[slot] = backend
    return backend


def local_slot_for(principal: Principal) -> str:
    return _slot_for_uid(principal.uid)


def _slot_for_uid(uid: str) -> str:
    return f"{settings.LOCAL_CACHE_SLOT}-{uid}"


def release_local_backend(uid: str, drop_data: bool = False) -> bool:
    """
    Forget the demo backend of uid once no session uses it.

    The backend is rebuilt from its cache slot on the next session. With
    drop_data the slot itself is deleted too; demo uids are never reissued,
    so sign-out makes the slot unreachable.
    """
    slot = _slot_for_uid(uid)
    backend = _local_backends.pop(slot, None)
    if backend is not None:
        backend.feed.close()
    if drop_data and _local_cache is not None:
        _local_cache.delete(slot)
        logger.info(f"Dropped local cache slot {slot}")
    return backend is not None


def backend_for(principal: Principal) -> StorageBackend:
    """Select the storage backend for a principal's session."""
    if principal.is_demo:
        return get_local_backend(local_slot_for(principal))
    return get_remote_backend()


def get_user_repository() -> CosmosUserRepository:
    """User records always live in the durable store."""
    if not is_cosmos_enabled():
        raise BackendUnavailable("User store is not configured. Set AZURE_COSMOS_ENDPOINT.")
    return CosmosUserRepository()


def remote_backend_if_open() -> CosmosIssueBackend | None:
    """The durable backend if something already created it."""
    return _remote_backend


def close_backends() -> None:
    """Drop all feeds and cached backends (application shutdown)."""
    global _remote_backend, _local_cache
    if _remote_backend is not None:
        _remote_backend.feed.close()
        _remote_backend = None
    for backend in _local_backends.values():
        backend.feed.close()
    _local_backends.clear()
    _local_cache = None
