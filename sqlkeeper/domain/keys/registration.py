"""One-time registration of storage handles and the default configuration.

`init` builds the handle itself from the locator's driver and data source;
`register` installs a handle the caller already owns. Both reject an
identity that is already registered and, on success, make the locator's
configuration the default for id-only locators.
"""
import logging
from typing import Optional

from sqlkeeper.core.config import Settings, get_settings
from sqlkeeper.core.context import Context, ensure_context
from sqlkeeper.errors import AlreadyInitialized

from .locator import DefaultConfigProvider, parse_registration_locator
from .models import KeeperConfig
from .ports import HandleFactory, StorageHandle
from .registry import ConnectionRegistry, discard_handle

logger = logging.getLogger(__name__)


class KeeperRegistrar:
    def __init__(
        self,
        registry: ConnectionRegistry,
        config_provider: DefaultConfigProvider,
        handle_factory: HandleFactory,
        settings: Optional[Settings] = None,
    ):
        self._registry = registry
        self._config_provider = config_provider
        self._handle_factory = handle_factory
        self._settings = settings or get_settings()

    def _parse(self, locator: str) -> KeeperConfig:
        config = parse_registration_locator(locator, default_table=self._settings.DEFAULT_TABLE)
        if self._registry.contains(config.connection):
            raise AlreadyInitialized(config.connection.redacted())
        return config

    def init(self, locator: str, ctx: Optional[Context] = None) -> KeeperConfig:
        """Construct and register a storage handle for the locator's connection."""
        config = self._parse(locator)
        ensure_context(ctx).check("construct_connection")
        handle = self._handle_factory(config.connection)
        try:
            self._registry.preregister(config.connection, handle)
        except AlreadyInitialized:
            discard_handle(handle, config.connection)
            raise
        self._config_provider.set(config)
        return config

    def register(self, locator: str, handle: StorageHandle, ctx: Optional[Context] = None) -> KeeperConfig:
        """Register a caller-owned storage handle for the locator's connection."""
        config = self._parse(locator)
        ensure_context(ctx).check("register_connection")
        self._registry.preregister(config.connection, handle)
        self._config_provider.set(config)
        return config
