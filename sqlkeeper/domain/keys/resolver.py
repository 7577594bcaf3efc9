"""Key resolution: locator -> connection -> find-or-create record -> keeper."""
import logging
from typing import Optional, Tuple
from urllib.parse import SplitResult, urlunsplit

from sqlkeeper.core.config import Settings, get_settings
from sqlkeeper.core.context import Context, ensure_context
from sqlkeeper.errors import CorruptKeyRecord, DuplicateKeyRecord

from .keeper import KeyGenerator, LocalKeeper, generate_key, new_random_key
from .locator import DefaultConfigProvider, parse_locator
from .models import KeeperConfig, KeyRecord
from .ports import HandleFactory, KeyRecordStore
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class KeyResolver:
    """Resolves key ids to local keepers, creating key records on first use."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        config_provider: DefaultConfigProvider,
        handle_factory: HandleFactory,
        key_generator: KeyGenerator = new_random_key,
        settings: Optional[Settings] = None,
    ):
        self._registry = registry
        self._config_provider = config_provider
        self._handle_factory = handle_factory
        self._key_generator = key_generator
        self._settings = settings or get_settings()

    def parse(self, locator: str) -> Tuple[int, KeeperConfig]:
        return parse_locator(
            locator,
            defaults=self._config_provider.get(),
            default_table=self._settings.DEFAULT_TABLE,
        )

    def open_keeper(self, locator: str, ctx: Optional[Context] = None) -> LocalKeeper:
        key_id, config = self.parse(locator)
        return self.resolve(config, key_id, ctx)

    def open_keeper_url(self, url: SplitResult, ctx: Optional[Context] = None) -> LocalKeeper:
        """URL mux entry point."""
        return self.open_keeper(urlunsplit(url), ctx)

    def resolve(self, config: KeeperConfig, key_id: int, ctx: Optional[Context] = None) -> LocalKeeper:
        ctx = ensure_context(ctx)

        ctx.check("acquire_connection")
        handle = self._registry.acquire(config.connection, self._handle_factory)
        store = handle.key_store(config.table)

        ctx.check("get_key_record")
        record = store.get_by_id(key_id)
        if record is not None:
            return LocalKeeper(self._decode(record, store))

        key = generate_key(self._key_generator, ctx, key_id)
        record = KeyRecord.wrap(key_id, key, config.master_key_url)

        ctx.check("insert_key_record")
        try:
            store.insert_one(record)
        except DuplicateKeyRecord:
            # Another resolver created this id between our lookup and insert.
            ctx.check("get_key_record")
            existing = store.get_by_id(key_id)
            if existing is None:
                raise
            logger.info(f"Key record id={key_id} in {store.table} was created concurrently; using stored key")
            return LocalKeeper(self._decode(existing, store))

        logger.info(f"Created key record id={key_id} in {store.table}")
        return LocalKeeper(key)

    @staticmethod
    def _decode(record: KeyRecord, store: KeyRecordStore) -> bytes:
        try:
            return record.key.key_bytes()
        except ValueError as e:
            raise CorruptKeyRecord(str(e), key_id=record.id, table=store.table) from e
