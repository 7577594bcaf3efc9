"""Key Domain Models."""
import base64
import binascii
import time

from pydantic import BaseModel, ConfigDict, Field

from sqlkeeper.logging_hardening import redact

KEY_SIZE = 32
DEFAULT_TABLE = "secret_key"


class ConnectionIdentity(BaseModel):
    """Storage driver + data source pair naming one reusable storage handle."""
    model_config = ConfigDict(frozen=True)

    driver: str
    data_source: str

    def redacted(self) -> str:
        """Identity for logs and error details, with any password masked."""
        return f"{self.driver}:{redact(self.data_source)}"


class KeeperConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    connection: ConnectionIdentity
    table: str = DEFAULT_TABLE
    master_key_url: str


class WrappedKey(BaseModel):
    """Raw key material (base64) plus the master key that conceptually wraps it.

    The master key URL is opaque here: it is recorded, never dereferenced.
    Serialized into a single text column as {"url": ..., "data": ...}.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    master_key_url: str = Field(..., alias="url")
    data: str

    @classmethod
    def from_key(cls, raw_key: bytes, master_key_url: str) -> "WrappedKey":
        return cls(
            master_key_url=master_key_url,
            data=base64.standard_b64encode(raw_key).decode("ascii"),
        )

    def key_bytes(self) -> bytes:
        """Decode `data` into exactly KEY_SIZE bytes, ValueError otherwise."""
        try:
            raw = base64.b64decode(self.data.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise ValueError(f"key data is not valid base64: {e}") from e
        if len(raw) != KEY_SIZE:
            raise ValueError(f"key must be exactly {KEY_SIZE} bytes, got {len(raw)}")
        return raw

    def to_text(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_text(cls, text: str) -> "WrappedKey":
        return cls.model_validate_json(text)


class KeyRecord(BaseModel):
    """Persisted key record. The id is always supplied by the caller."""
    model_config = ConfigDict(frozen=True)

    id: int
    key: WrappedKey
    created_unix: int = Field(default_factory=lambda: int(time.time()))

    @classmethod
    def wrap(cls, key_id: int, raw_key: bytes, master_key_url: str) -> "KeyRecord":
        return cls(id=key_id, key=WrappedKey.from_key(raw_key, master_key_url))
