"""Memory Store Implementations.

Backs the `memdb` driver. Rows are kept in their text column encoding so
the wrapped-key wire format is exercised exactly as with a SQL engine.
"""
import logging
import threading
from typing import Dict, Optional, Tuple

from sqlkeeper.domain.keys.models import ConnectionIdentity, KeyRecord, WrappedKey
from sqlkeeper.domain.keys.ports import KeyRecordStore, StorageHandle
from sqlkeeper.errors import CorruptKeyRecord, DuplicateKeyRecord, PersistenceError

logger = logging.getLogger(__name__)

# id -> (key text, created_unix)
_Row = Tuple[str, int]


class MemoryStorageHandle(StorageHandle):
    def __init__(self, identity: Optional[ConnectionIdentity] = None, auto_create: bool = True):
        self.identity = identity
        self._auto_create = auto_create
        self._lock = threading.Lock()
        self._tables: Dict[str, Dict[int, _Row]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def create_tables(self, table: str) -> None:
        with self._lock:
            self._tables.setdefault(table, {})

    def key_store(self, table: str) -> "MemoryKeyRecordStore":
        if self._auto_create:
            self.create_tables(table)
        return MemoryKeyRecordStore(self, table)

    def close(self) -> None:
        self._closed = True

    def read_row(self, table: str, key_id: int) -> Optional[_Row]:
        with self._lock:
            return self._rows(table, key_id).get(key_id)

    def insert_row(self, table: str, key_id: int, row: _Row) -> bool:
        """Store `row` unless `key_id` is taken; returns False on conflict."""
        with self._lock:
            rows = self._rows(table, key_id)
            if key_id in rows:
                return False
            rows[key_id] = row
            return True

    def _rows(self, table: str, key_id: int) -> Dict[int, _Row]:
        if self._closed:
            raise PersistenceError("storage handle is closed", key_id=key_id, table=table)
        rows = self._tables.get(table)
        if rows is None:
            raise PersistenceError(f"no such table: {table}", key_id=key_id, table=table)
        return rows


class MemoryKeyRecordStore(KeyRecordStore):
    def __init__(self, handle: MemoryStorageHandle, table: str):
        self._handle = handle
        self._table = table

    @property
    def table(self) -> str:
        return self._table

    def get_by_id(self, key_id: int) -> Optional[KeyRecord]:
        row = self._handle.read_row(self._table, key_id)
        if row is None:
            return None
        text, created_unix = row
        try:
            key = WrappedKey.from_text(text)
        except ValueError as e:
            raise CorruptKeyRecord("stored key is not a wrapped key", key_id=key_id, table=self._table) from e
        return KeyRecord(id=key_id, key=key, created_unix=created_unix)

    def insert_one(self, record: KeyRecord) -> None:
        row = (record.key.to_text(), record.created_unix)
        if not self._handle.insert_row(self._table, record.id, row):
            raise DuplicateKeyRecord(
                "key record already exists", key_id=record.id, table=self._table
            )
        logger.debug(f"Inserted key record id={record.id} into memory table {self._table}")
