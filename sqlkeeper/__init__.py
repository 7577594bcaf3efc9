"""sqlkeeper - symmetric keys resolved by numeric id and persisted in SQL.

    import sqlkeeper

    sqlkeeper.init("xkms://?driver=postgres&ds=...&master_key_url=gcpkms://...")
    keeper = sqlkeeper.open_keeper("xkms://20190803")
    ciphertext = keeper.encrypt(b"my name is xorm")
"""
from typing import Any, Optional

from sqlkeeper.adapters.drivers import as_storage_handle, register_driver
from sqlkeeper.core.config import settings
from sqlkeeper.core.context import Context
from sqlkeeper.dependencies import URLOpener, get_key_resolver, get_registrar
from sqlkeeper.domain.keys.keeper import LocalKeeper
from sqlkeeper.domain.keys.locator import SCHEME
from sqlkeeper.domain.keys.models import KeeperConfig, KeyRecord, WrappedKey
from sqlkeeper.domain.keys.urlmux import default_url_mux
from sqlkeeper.errors import (
    AlreadyInitialized,
    CorruptKeyRecord,
    DeadlineExceeded,
    DuplicateKeyRecord,
    InvalidKeyID,
    InvalidLocator,
    KeeperError,
    KeyGenerationFailure,
    MissingConfiguration,
    OperationCancelled,
    PersistenceError,
)
from sqlkeeper.logging_hardening import setup_logging_redaction


def init(locator: str, ctx: Optional[Context] = None) -> KeeperConfig:
    """Create and register a storage engine from the locator's driver and ds."""
    return get_registrar().init(locator, ctx)


def register(locator: str, handle: Any, ctx: Optional[Context] = None) -> KeeperConfig:
    """Register a caller-owned storage handle or SQLAlchemy Engine."""
    return get_registrar().register(locator, as_storage_handle(handle, settings), ctx)


def open_keeper(locator: str, ctx: Optional[Context] = None) -> LocalKeeper:
    """Return a keeper for the key id named by the locator, creating the key if needed."""
    return get_key_resolver().open_keeper(locator, ctx)


default_url_mux().register_keeper(SCHEME, URLOpener())

if settings.LOG_REDACTION:
    setup_logging_redaction()


__all__ = [
    "SCHEME",
    "Context",
    "KeeperConfig",
    "KeyRecord",
    "LocalKeeper",
    "WrappedKey",
    "init",
    "register",
    "open_keeper",
    "register_driver",
    "AlreadyInitialized",
    "CorruptKeyRecord",
    "DeadlineExceeded",
    "DuplicateKeyRecord",
    "InvalidKeyID",
    "InvalidLocator",
    "KeeperError",
    "KeyGenerationFailure",
    "MissingConfiguration",
    "OperationCancelled",
    "PersistenceError",
]
