import pytest

from sqlkeeper import dependencies
from sqlkeeper.adapters.drivers import handle_factory
from sqlkeeper.core.config import Settings
from sqlkeeper.domain.keys.locator import DefaultConfigProvider
from sqlkeeper.domain.keys.registration import KeeperRegistrar
from sqlkeeper.domain.keys.registry import ConnectionRegistry
from sqlkeeper.domain.keys.resolver import KeyResolver

MEMDB_QUERY = "driver=memdb&ds=test&master_key_url=local://test-key"


@pytest.fixture(autouse=True)
def clean_global_state():
    """Give every test a fresh process-wide registry and default configuration."""
    dependencies.reset_state()
    yield
    dependencies.reset_state()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def registry():
    reg = ConnectionRegistry()
    yield reg
    reg.close_all()


@pytest.fixture
def config_provider():
    return DefaultConfigProvider()


@pytest.fixture
def resolver(registry, config_provider, settings):
    return KeyResolver(registry, config_provider, handle_factory(settings), settings=settings)


@pytest.fixture
def registrar(registry, config_provider, settings):
    return KeeperRegistrar(registry, config_provider, handle_factory(settings), settings=settings)


@pytest.fixture
def memdb_locator():
    """Build a fully specified memdb locator for a key id."""
    def build(key_id, query: str = MEMDB_QUERY) -> str:
        return f"xkms://{key_id}?{query}"
    return build
