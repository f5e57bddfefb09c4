"""Administrator role resolution with a short-lived per-user cache."""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from reporting_gateway.models.request import CallerIdentity

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"admin", "administrator"})


def is_admin_role(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


@dataclass
class RoleCacheEntry:
    user_id: str
    is_admin: bool
    role: Optional[str]
    expires_at: float


class RoleCache:
    """In-memory role verdicts keyed by user id.

    Entries expire lazily on read and can be swept with ``cleanup_expired``.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, RoleCacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, user_id: str) -> asyncio.Lock:
        """Per-user lock serializing resolution for that user only."""
        return self._locks[user_id]

    def get(self, user_id: str) -> Optional[RoleCacheEntry]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[user_id]
            return None
        return entry

    def put(self, user_id: str, is_admin: bool, role: Optional[str]) -> RoleCacheEntry:
        entry = RoleCacheEntry(
            user_id=user_id,
            is_admin=is_admin,
            role=role,
            expires_at=self._clock() + self.ttl_seconds,
        )
        self._entries[user_id] = entry
        return entry

    def invalidate(self, user_id: str):
        self._entries.pop(user_id, None)

    def cleanup_expired(self) -> int:
        """Drop expired entries and their idle locks; returns the number removed."""
        now = self._clock()
        expired_keys = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired_keys:
            del self._entries[key]
            lock = self._locks.get(key)
            if lock is not None and not lock.locked():
                del self._locks[key]

        if expired_keys:
            logger.info(f"Cleaned up {len(expired_keys)} expired role cache entries")
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._entries)


class RoleResolver:
    """Determines whether a verified user is an administrator."""

    def __init__(self, data_store, cache: RoleCache):
        """Initialize role resolver.

        Args:
            data_store: Object exposing ``fetch_user_role(user_id)``
            cache: Role cache owned by the application
        """
        self.data_store = data_store
        self.cache = cache

    async def resolve(self, user_id: str, role_claim: Optional[str] = None) -> CallerIdentity:
        """Resolve the caller identity for a verified user.

        A cached verdict is returned without any downstream call. Otherwise an
        admin role claim on the credential wins; without one, the user's row
        in the data store is consulted once. A failed lookup means "not admin".
        """
        async with self.cache.lock_for(user_id):
            cached = self.cache.get(user_id)
            if cached is not None:
                return CallerIdentity(user_id=user_id, is_admin=cached.is_admin, role=cached.role)

            role = role_claim
            is_admin = is_admin_role(role_claim)
            if not is_admin:
                try:
                    stored_role = await self.data_store.fetch_user_role(user_id)
                except Exception as e:
                    logger.warning(f"Role lookup failed for user {user_id}: {e}")
                    stored_role = None
                if is_admin_role(stored_role):
                    is_admin = True
                    role = stored_role

            entry = self.cache.put(user_id, is_admin, role)
            logger.debug(f"Resolved role for user {user_id}: admin={is_admin}")
            return CallerIdentity(user_id=user_id, is_admin=entry.is_admin, role=entry.role)
