"""Tests for the memdb storage handle."""
import pytest

from sqlkeeper.adapters.memory_store.stores import MemoryStorageHandle
from sqlkeeper.domain.keys.models import KeyRecord
from sqlkeeper.errors import CorruptKeyRecord, DuplicateKeyRecord, PersistenceError


@pytest.fixture
def handle():
    return MemoryStorageHandle()


def test_rows_keep_their_column_encoding(handle):
    record = KeyRecord.wrap(1, b"a" * 32, "local://k")
    handle.key_store("secret_key").insert_one(record)

    text, created_unix = handle.read_row("secret_key", 1)
    assert text == record.key.to_text()
    assert created_unix == record.created_unix


def test_insert_row_refuses_taken_id(handle):
    handle.create_tables("secret_key")
    assert handle.insert_row("secret_key", 1, ("{}", 0))
    assert not handle.insert_row("secret_key", 1, ("{}", 1))
    assert handle.read_row("secret_key", 1) == ("{}", 0)


def test_duplicate_insert_raises(handle):
    store = handle.key_store("secret_key")
    store.insert_one(KeyRecord.wrap(1, b"a" * 32, "local://k"))
    with pytest.raises(DuplicateKeyRecord):
        store.insert_one(KeyRecord.wrap(1, b"b" * 32, "local://k"))


def test_unparseable_row_is_corrupt(handle):
    handle.create_tables("secret_key")
    handle.insert_row("secret_key", 4, ("not json", 0))
    with pytest.raises(CorruptKeyRecord) as exc_info:
        handle.key_store("secret_key").get_by_id(4)
    assert exc_info.value.key_id == 4


def test_missing_table_without_auto_create():
    handle = MemoryStorageHandle(auto_create=False)
    with pytest.raises(PersistenceError, match="no such table"):
        handle.key_store("secret_key").get_by_id(1)


def test_closed_handle_refuses_access(handle):
    store = handle.key_store("secret_key")
    handle.close()
    assert handle.closed
    with pytest.raises(PersistenceError, match="closed"):
        store.get_by_id(1)
