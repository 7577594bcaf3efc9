"""Tests for the error taxonomy."""
from sqlkeeper.errors import (
    AlreadyInitialized,
    DeadlineExceeded,
    DuplicateKeyRecord,
    InvalidKeyID,
    KeeperError,
    MissingConfiguration,
    OperationCancelled,
    PersistenceError,
)


def test_error_body_shape():
    err = PersistenceError("failed to load key record", key_id=7, table="secret_key")
    assert err.to_dict() == {
        "error": {
            "code": "PERSISTENCE_ERROR",
            "message": "failed to load key record",
            "details": {"key_id": 7, "table": "secret_key"},
        }
    }


def test_none_details_are_dropped():
    err = PersistenceError("boom")
    assert err.details == {}
    assert "details" not in err.to_dict()["error"]
    assert str(err) == "PERSISTENCE_ERROR: boom"


def test_str_includes_context():
    err = InvalidKeyID("abc", locator="xkms://abc")
    assert str(err).startswith("INVALID_KEY_ID: could not parse key id 'abc'")
    assert "locator='xkms://abc'" in str(err)


def test_missing_configuration_lists_fields():
    err = MissingConfiguration(["driver", "ds"])
    assert err.fields == ["driver", "ds"]
    assert err.message == "must supply driver, ds query parameters"


def test_hierarchy():
    assert issubclass(DuplicateKeyRecord, PersistenceError)
    assert issubclass(DeadlineExceeded, OperationCancelled)
    assert isinstance(AlreadyInitialized("memdb:test"), KeeperError)
    assert DuplicateKeyRecord("dup", key_id=1).code == "DUPLICATE_KEY_RECORD"
