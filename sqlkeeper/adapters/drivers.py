"""Storage driver dispatch.

Maps a connection identity's driver name to the factory that builds its
storage handle. `memdb` is built in; every other driver is handed to
SQLAlchemy.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

from sqlalchemy.engine import Engine

from sqlkeeper.core.config import Settings, get_settings
from sqlkeeper.domain.keys.models import ConnectionIdentity
from sqlkeeper.domain.keys.ports import HandleFactory, StorageHandle

from .memory_store.stores import MemoryStorageHandle
from .sql.engine import create_sql_handle
from .sql.key_store import SqlStorageHandle

logger = logging.getLogger(__name__)

MEMORY_DRIVER = "memdb"

DriverFactory = Callable[[ConnectionIdentity, Settings], StorageHandle]

_DRIVERS: Dict[str, DriverFactory] = {
    MEMORY_DRIVER: lambda identity, settings: MemoryStorageHandle(identity),
}
_DRIVERS_LOCK = threading.Lock()


def register_driver(name: str, factory: DriverFactory) -> None:
    with _DRIVERS_LOCK:
        _DRIVERS[name] = factory
    logger.info(f"Registered storage driver {name}")


def open_storage_handle(identity: ConnectionIdentity, settings: Optional[Settings] = None) -> StorageHandle:
    settings = settings or get_settings()
    with _DRIVERS_LOCK:
        factory = _DRIVERS.get(identity.driver)
    if factory is None:
        return create_sql_handle(identity, settings)
    return factory(identity, settings)


def handle_factory(settings: Optional[Settings] = None) -> HandleFactory:
    """Bind settings into the one-argument factory the registry expects."""
    def factory(identity: ConnectionIdentity) -> StorageHandle:
        return open_storage_handle(identity, settings)
    return factory


def as_storage_handle(obj: Any, settings: Optional[Settings] = None) -> StorageHandle:
    """Accept a StorageHandle, or a bare SQLAlchemy Engine owned by the caller."""
    if isinstance(obj, StorageHandle):
        return obj
    if isinstance(obj, Engine):
        settings = settings or get_settings()
        return SqlStorageHandle(
            obj,
            cache_size=settings.RECORD_CACHE_SIZE,
            auto_create=settings.AUTO_CREATE_TABLES,
        )
    raise TypeError(f"expected a StorageHandle or sqlalchemy Engine, got {type(obj).__name__}")
