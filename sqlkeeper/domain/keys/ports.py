"""Key Domain Ports (Interfaces)."""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .models import ConnectionIdentity, KeyRecord


class KeyRecordStore(ABC):
    """Abstract Port for key record persistence, scoped to one table."""

    @property
    @abstractmethod
    def table(self) -> str:
        ...

    @abstractmethod
    def get_by_id(self, key_id: int) -> Optional[KeyRecord]:
        """Point lookup. Returns None when no record exists."""
        ...

    @abstractmethod
    def insert_one(self, record: KeyRecord) -> None:
        """Insert a new record. Raises DuplicateKeyRecord if the id exists."""
        ...


class StorageHandle(ABC):
    """Abstract Port for a live, shareable storage engine."""

    @abstractmethod
    def key_store(self, table: str) -> KeyRecordStore:
        ...

    @abstractmethod
    def create_tables(self, table: str) -> None:
        """Create the key record table if it does not exist."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        ...


HandleFactory = Callable[[ConnectionIdentity], StorageHandle]
