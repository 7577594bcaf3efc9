"""Error taxonomy for key resolution.

Every error carries a stable code, a human readable message and a details
mapping with the locator, identity, key id or table involved, shaped like
a standard error body.
"""
from typing import Any, Dict, Iterable, Optional


class KeeperError(Exception):
    """Base class for all sqlkeeper failures."""

    code = "KEEPER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = {k: v for k, v in (details or {}).items() if v is not None}

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}: {self.message}"
        context = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.code}: {self.message} ({context})"

    def to_dict(self) -> Dict[str, Any]:
        error_body: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            error_body["details"] = dict(self.details)
        return {"error": error_body}


class InvalidLocator(KeeperError):
    code = "INVALID_LOCATOR"

    def __init__(self, message: str, locator: Optional[str] = None, parameter: Optional[str] = None):
        super().__init__(message, {"locator": locator, "parameter": parameter})
        self.locator = locator
        self.parameter = parameter


class InvalidKeyID(KeeperError):
    code = "INVALID_KEY_ID"

    def __init__(self, raw_id: str, locator: Optional[str] = None):
        super().__init__(
            f"could not parse key id {raw_id!r} as a base-10 64-bit integer",
            {"locator": locator, "raw_id": raw_id},
        )
        self.raw_id = raw_id


class MissingConfiguration(KeeperError):
    code = "MISSING_CONFIGURATION"

    def __init__(self, fields: Iterable[str], locator: Optional[str] = None):
        self.fields = list(fields)
        super().__init__(
            f"must supply {', '.join(self.fields)} query parameters",
            {"locator": locator, "fields": self.fields},
        )


class AlreadyInitialized(KeeperError):
    code = "ALREADY_INITIALIZED"

    def __init__(self, identity: str):
        super().__init__(f"engine for {identity} has been already initialized", {"identity": identity})
        self.identity = identity


class PersistenceError(KeeperError):
    code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        key_id: Optional[int] = None,
        table: Optional[str] = None,
        identity: Optional[str] = None,
    ):
        super().__init__(message, {"key_id": key_id, "table": table, "identity": identity})
        self.key_id = key_id
        self.table = table


class DuplicateKeyRecord(PersistenceError):
    """Primary-key violation on insert: the id was created concurrently."""

    code = "DUPLICATE_KEY_RECORD"


class CorruptKeyRecord(KeeperError):
    code = "CORRUPT_KEY_RECORD"

    def __init__(self, message: str, key_id: Optional[int] = None, table: Optional[str] = None):
        super().__init__(message, {"key_id": key_id, "table": table})
        self.key_id = key_id
        self.table = table


class KeyGenerationFailure(KeeperError):
    code = "KEY_GENERATION_FAILURE"

    def __init__(self, message: str, key_id: Optional[int] = None):
        super().__init__(message, {"key_id": key_id})
        self.key_id = key_id


class OperationCancelled(KeeperError):
    code = "OPERATION_CANCELLED"

    def __init__(self, operation: str, message: str = "operation cancelled by caller"):
        super().__init__(message, {"operation": operation})
        self.operation = operation


class DeadlineExceeded(OperationCancelled):
    code = "DEADLINE_EXCEEDED"

    def __init__(self, operation: str):
        super().__init__(operation, "deadline exceeded")
