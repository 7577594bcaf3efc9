"""SqlKeyRecordStore - SQLAlchemy-backed key record persistence.

This module provides the relational store that:
1. Looks records up by caller-supplied id (no error on miss)
2. Inserts records exactly once, surfacing primary-key violations
3. Keeps a small per-table LRU cache of records already found
"""
import logging
import threading
from collections import OrderedDict
from typing import Dict, Optional

from sqlalchemy import MetaData, Table, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sqlkeeper.domain.keys.models import KeyRecord, WrappedKey
from sqlkeeper.domain.keys.ports import KeyRecordStore, StorageHandle
from sqlkeeper.errors import CorruptKeyRecord, DuplicateKeyRecord, PersistenceError

from .models import secret_key_table

logger = logging.getLogger(__name__)


def _cause(e: SQLAlchemyError) -> str:
    # Statement parameters may carry key material; report only the driver error.
    orig = getattr(e, "orig", None)
    return str(orig) if orig is not None else type(e).__name__


class RecordCache:
    """Thread-safe LRU of immutable key records."""

    def __init__(self, max_size: int = 50):
        self._max_size = max_size
        self._lock = threading.Lock()
        self._items: "OrderedDict[int, KeyRecord]" = OrderedDict()

    def get(self, key_id: int) -> Optional[KeyRecord]:
        if self._max_size <= 0:
            return None
        with self._lock:
            record = self._items.get(key_id)
            if record is not None:
                self._items.move_to_end(key_id)
            return record

    def put(self, record: KeyRecord) -> None:
        if self._max_size <= 0:
            return
        with self._lock:
            self._items[record.id] = record
            self._items.move_to_end(record.id)
            while len(self._items) > self._max_size:
                self._items.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SqlStorageHandle(StorageHandle):
    """Wraps a SQLAlchemy Engine shared by every table it serves."""

    def __init__(self, engine: Engine, cache_size: int = 50, auto_create: bool = False):
        self.engine = engine
        self._cache_size = cache_size
        self._auto_create = auto_create
        self._lock = threading.Lock()
        self._ddl_lock = threading.Lock()
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self._caches: Dict[str, RecordCache] = {}
        self._created: set[str] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def table(self, name: str) -> Table:
        with self._lock:
            table = self._tables.get(name)
            if table is None:
                table = secret_key_table(name, self._metadata)
                self._tables[name] = table
                self._caches[name] = RecordCache(self._cache_size)
            return table

    def create_tables(self, table: str) -> None:
        sa_table = self.table(table)
        with self._ddl_lock:
            try:
                sa_table.create(self.engine, checkfirst=True)
            except SQLAlchemyError as e:
                raise PersistenceError(f"failed to create table: {_cause(e)}", table=table) from e
            self._created.add(table)
        logger.info(f"Ensured key record table {table}")

    def key_store(self, table: str) -> "SqlKeyRecordStore":
        sa_table = self.table(table)
        if self._auto_create and table not in self._created:
            self.create_tables(table)
        return SqlKeyRecordStore(self.engine, sa_table, self._caches[table])

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.engine.dispose()


class SqlKeyRecordStore(KeyRecordStore):
    def __init__(self, engine: Engine, table: Table, cache: Optional[RecordCache] = None):
        self._engine = engine
        self._table = table
        self._cache = cache

    @property
    def table(self) -> str:
        return self._table.name

    def get_by_id(self, key_id: int) -> Optional[KeyRecord]:
        if self._cache is not None:
            cached = self._cache.get(key_id)
            if cached is not None:
                return cached

        stmt = select(self._table.c.id, self._table.c.key, self._table.c.created_unix).where(
            self._table.c.id == key_id
        )
        try:
            with self._engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to load key record: {_cause(e)}", key_id=key_id, table=self.table) from e

        if row is None:
            return None

        try:
            key = WrappedKey.from_text(row.key or "")
        except ValueError as e:
            raise CorruptKeyRecord("stored key is not a wrapped key", key_id=key_id, table=self.table) from e

        record = KeyRecord(id=row.id, key=key, created_unix=row.created_unix or 0)
        if self._cache is not None:
            self._cache.put(record)
        return record

    def insert_one(self, record: KeyRecord) -> None:
        stmt = insert(self._table).values(
            id=record.id,
            key=record.key.to_text(),
            created_unix=record.created_unix,
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError as e:
            raise DuplicateKeyRecord(
                f"key record already exists: {_cause(e)}", key_id=record.id, table=self.table
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed to insert key record: {_cause(e)}", key_id=record.id, table=self.table) from e

        logger.info(f"Inserted key record id={record.id} into {self.table}")
        if self._cache is not None:
            self._cache.put(record)
