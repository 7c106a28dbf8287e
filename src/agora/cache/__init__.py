"""Response cache layer for Agora.

Process-local read-through caching of rendered forum pages:
- Keyed TTL store with lazy expiry checks and a background sweep
- Hit/miss/set/delete statistics via a wrapping store
- Typed invalidation requests driven by a mutation policy table
"""

from agora.cache.invalidation import (
    InvalidationError,
    InvalidationKind,
    InvalidationRequest,
    Mutation,
    MutationKind,
)
from agora.cache.keys import CacheKeys
from agora.cache.service import CachedPage, CacheService, CacheTTLs, is_cacheable_page
from agora.cache.stats import CacheStatistics, InstrumentedStore
from agora.cache.store import ExpirySweeper, KeyedTTLStore

__all__ = [
    # Core cache
    "CacheKeys",
    "KeyedTTLStore",
    "ExpirySweeper",
    "CacheStatistics",
    "InstrumentedStore",
    # Coordination
    "CacheService",
    "CacheTTLs",
    "CachedPage",
    "is_cacheable_page",
    # Invalidation
    "InvalidationError",
    "InvalidationKind",
    "InvalidationRequest",
    "Mutation",
    "MutationKind",
]
