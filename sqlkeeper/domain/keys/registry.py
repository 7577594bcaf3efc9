"""Process-wide cache of live storage handles keyed by connection identity.

Invariant: at most one handle per identity survives in the registry. The
map is guarded by a single reader/writer lock which is never held while a
handle is being constructed or closed.
"""
import logging
from typing import Dict, List, Optional

from sqlkeeper.errors import AlreadyInitialized
from sqlkeeper.utils.rwlock import RWLock

from .models import ConnectionIdentity
from .ports import HandleFactory, StorageHandle

logger = logging.getLogger(__name__)


def discard_handle(handle: StorageHandle, identity: ConnectionIdentity) -> None:
    """Close a handle that lost a registration race; close failures are only logged."""
    try:
        handle.close()
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.warning(f"Failed to close discarded storage handle for {identity.redacted()}: {e}")


class ConnectionRegistry:
    def __init__(self):
        self._lock = RWLock()
        self._handles: Dict[ConnectionIdentity, StorageHandle] = {}

    def get(self, identity: ConnectionIdentity) -> Optional[StorageHandle]:
        with self._lock.read_locked():
            return self._handles.get(identity)

    def contains(self, identity: ConnectionIdentity) -> bool:
        return self.get(identity) is not None

    def acquire(self, identity: ConnectionIdentity, factory: HandleFactory) -> StorageHandle:
        """Return the cached handle for `identity`, constructing one on first use."""
        handle = self.get(identity)
        if handle is not None:
            return handle

        # Construction may dial the network; run it unlocked.
        candidate = factory(identity)

        with self._lock.write_locked():
            existing = self._handles.get(identity)
            if existing is None:
                self._handles[identity] = candidate
        if existing is None:
            logger.info(f"Registered storage handle for {identity.redacted()}")
            return candidate

        logger.debug(f"Discarding duplicate storage handle for {identity.redacted()}")
        discard_handle(candidate, identity)
        return existing

    def preregister(self, identity: ConnectionIdentity, handle: StorageHandle) -> None:
        """Install `handle`; fails if the identity is already registered."""
        with self._lock.write_locked():
            if identity in self._handles:
                raise AlreadyInitialized(identity.redacted())
            self._handles[identity] = handle
        logger.info(f"Pre-registered storage handle for {identity.redacted()}")

    def identities(self) -> List[ConnectionIdentity]:
        with self._lock.read_locked():
            return list(self._handles)

    def close_all(self) -> None:
        """Close and forget every handle. For caller-driven shutdown only."""
        with self._lock.write_locked():
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            try:
                handle.close()
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.warning(f"Failed to close storage handle: {e}")

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._handles)
