"""Process-wide wiring.

One registry, one default-configuration slot and one resolver/registrar
pair per process, built lazily and shared by the module-level API.
"""
import logging
import threading
from typing import Optional

from sqlkeeper.adapters.drivers import handle_factory
from sqlkeeper.core.config import Settings, get_settings
from sqlkeeper.domain.keys.locator import DefaultConfigProvider
from sqlkeeper.domain.keys.registration import KeeperRegistrar
from sqlkeeper.domain.keys.registry import ConnectionRegistry
from sqlkeeper.domain.keys.resolver import KeyResolver

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_registry: Optional[ConnectionRegistry] = None
_config_provider: Optional[DefaultConfigProvider] = None
_resolver: Optional[KeyResolver] = None
_registrar: Optional[KeeperRegistrar] = None


def _build(settings: Settings) -> None:
    global _registry, _config_provider, _resolver, _registrar
    _registry = ConnectionRegistry()
    _config_provider = DefaultConfigProvider()
    factory = handle_factory(settings)
    _resolver = KeyResolver(_registry, _config_provider, factory, settings=settings)
    _registrar = KeeperRegistrar(_registry, _config_provider, factory, settings=settings)


def _ensure() -> None:
    with _lock:
        if _registry is None:
            _build(get_settings())


def get_registry() -> ConnectionRegistry:
    _ensure()
    return _registry  # type: ignore


def get_config_provider() -> DefaultConfigProvider:
    _ensure()
    return _config_provider  # type: ignore


def get_key_resolver() -> KeyResolver:
    _ensure()
    return _resolver  # type: ignore


def get_registrar() -> KeeperRegistrar:
    _ensure()
    return _registrar  # type: ignore


def reset_state(settings: Optional[Settings] = None) -> None:
    """Close every registered handle and rebuild the process-wide state."""
    with _lock:
        if _registry is not None:
            _registry.close_all()
        _build(settings or get_settings())
    logger.debug("Reset keeper state")


class URLOpener:
    """Opener registered on the URL mux; always uses the current resolver."""

    def open_keeper_url(self, url, ctx=None):
        return get_key_resolver().open_keeper_url(url, ctx)
