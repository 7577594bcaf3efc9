"""SQLAlchemy engine construction from a connection identity."""
import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from sqlkeeper.core.config import Settings, get_settings
from sqlkeeper.domain.keys.models import ConnectionIdentity
from sqlkeeper.errors import PersistenceError
from sqlkeeper.logging_hardening import redact

from .key_store import SqlStorageHandle

logger = logging.getLogger(__name__)

# Driver names as commonly written elsewhere -> SQLAlchemy dialect names
DRIVER_ALIASES = {
    "postgres": "postgresql",
    "pgx": "postgresql",
    "sqlite3": "sqlite",
}


def normalize_driver(driver: str) -> str:
    backend, sep, dbapi = driver.partition("+")
    return DRIVER_ALIASES.get(backend, backend) + sep + dbapi


def build_url(identity: ConnectionIdentity) -> Tuple[URL, Dict[str, Any]]:
    """Translate (driver, data source) into a SQLAlchemy URL and connect args.

    The data source may be a full URL, a SQLite path (or ":memory:"), or a
    libpq-style "key=value" DSN.
    """
    driver = normalize_driver(identity.driver)
    ds = identity.data_source
    connect_args: Dict[str, Any] = {}

    if "://" in ds:
        url = make_url(ds)
        if url.get_backend_name() != driver.partition("+")[0]:
            raise ArgumentError(f"data source backend {url.get_backend_name()!r} does not match driver {driver!r}")
        if "+" in driver:
            url = url.set(drivername=driver)
    elif driver.startswith("sqlite"):
        url = URL.create(driver, database=ds)
    else:
        url = URL.create(driver)
        connect_args["dsn"] = ds

    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
    return url, connect_args


def _is_sqlite_memory(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def create_storage_engine(identity: ConnectionIdentity, settings: Optional[Settings] = None) -> Engine:
    settings = settings or get_settings()
    try:
        url, connect_args = build_url(identity)
        kwargs: Dict[str, Any] = {
            "echo": settings.SHOW_SQL,
            "connect_args": connect_args,
        }
        if _is_sqlite_memory(url):
            # One shared connection, otherwise every checkout sees an empty database.
            kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = settings.POOL_PRE_PING
        engine = create_engine(url, **kwargs)
    except (ArgumentError, NoSuchModuleError, SQLAlchemyError, ImportError, ValueError) as e:
        logger.error(f"Failed to create storage engine for {identity.redacted()}: {type(e).__name__}")
        raise PersistenceError(f"failed to create storage engine: {redact(str(e))}", identity=identity.redacted()) from e

    logger.info(f"Created storage engine for {identity.redacted()}")
    return engine


def create_sql_handle(identity: ConnectionIdentity, settings: Optional[Settings] = None) -> SqlStorageHandle:
    settings = settings or get_settings()
    engine = create_storage_engine(identity, settings)
    return SqlStorageHandle(
        engine,
        cache_size=settings.RECORD_CACHE_SIZE,
        auto_create=settings.AUTO_CREATE_TABLES,
    )
