"""Tests for locator parsing and the default configuration slot."""
import logging
from urllib.parse import urlencode

import pytest

from sqlkeeper.domain.keys.locator import (
    DefaultConfigProvider,
    parse_key_id,
    parse_locator,
    parse_registration_locator,
)
from sqlkeeper.domain.keys.models import ConnectionIdentity, KeeperConfig
from sqlkeeper.errors import InvalidKeyID, InvalidLocator, MissingConfiguration


@pytest.fixture
def defaults():
    return KeeperConfig(
        connection=ConnectionIdentity(driver="postgres", data_source="host=db password=hunter2"),
        table="keys",
        master_key_url="gcpkms://projects/p/locations/global/keyRings/r/cryptoKeys/k",
    )


def test_parse_full_locator():
    key_id, config = parse_locator(
        "xkms://20190803?driver=memdb&ds=test&master_key_url=local://test-key&table=my_keys"
    )
    assert key_id == 20190803
    assert config.connection == ConnectionIdentity(driver="memdb", data_source="test")
    assert config.master_key_url == "local://test-key"
    assert config.table == "my_keys"


def test_table_defaults_to_secret_key():
    _, config = parse_locator("xkms://1?driver=memdb&ds=test&master_key_url=local://k")
    assert config.table == "secret_key"


def test_url_encoded_data_source():
    """libpq style data sources contain spaces and '=' and must survive encoding."""
    ds = "user=gitea password=gitea host=127.0.0.1 port=5432 dbname=xorm-demo sslmode=disable"
    query = urlencode({"driver": "postgres", "ds": ds, "master_key_url": "gcpkms://projects/a"})
    _, config = parse_locator(f"xkms://7?{query}")
    assert config.connection.data_source == ds


def test_unknown_query_key_rejected():
    with pytest.raises(InvalidLocator) as exc_info:
        parse_locator("xkms://1?driver=memdb&ds=test&master_key_url=local://k&color=blue")
    assert exc_info.value.parameter == "color"
    assert "color" in str(exc_info.value)


def test_wrong_scheme_rejected():
    with pytest.raises(InvalidLocator, match="unsupported scheme"):
        parse_locator("gcpkms://1?driver=memdb&ds=test&master_key_url=local://k")


@pytest.mark.parametrize("raw", ["abc", "", "1.5", "0x10", str(2 ** 63), str(-(2 ** 63) - 1)])
def test_invalid_key_id(raw):
    with pytest.raises(InvalidKeyID):
        parse_locator(f"xkms://{raw}?driver=memdb&ds=test&master_key_url=local://k")


def test_signed_key_ids_within_int64():
    assert parse_key_id("+5") == 5
    assert parse_key_id("-12") == -12
    assert parse_key_id(str(2 ** 63 - 1)) == 2 ** 63 - 1


def test_missing_configuration_without_defaults():
    with pytest.raises(MissingConfiguration) as exc_info:
        parse_locator("xkms://20190803")
    assert exc_info.value.fields == ["driver", "ds", "master_key_url"]


def test_missing_only_master_key_url():
    with pytest.raises(MissingConfiguration) as exc_info:
        parse_locator("xkms://1?driver=memdb&ds=test")
    assert exc_info.value.fields == ["master_key_url"]


def test_bare_locator_uses_defaults(defaults):
    key_id, config = parse_locator("xkms://42", defaults=defaults)
    assert key_id == 42
    assert config == defaults


def test_query_overlays_defaults(defaults):
    _, config = parse_locator("xkms://42?table=other&ds=host=replica", defaults=defaults)
    assert config.connection.driver == "postgres"
    assert config.connection.data_source == "host=replica"
    assert config.table == "other"
    assert config.master_key_url == defaults.master_key_url


def test_empty_query_value_does_not_override(defaults):
    _, config = parse_locator("xkms://42?driver=&table=", defaults=defaults)
    assert config.connection.driver == "postgres"
    assert config.table == "keys"


def test_registration_locator_needs_no_key_id():
    config = parse_registration_locator("xkms:?driver=memdb&ds=test&master_key_url=local://k")
    assert config.connection.driver == "memdb"
    assert config.table == "secret_key"


def test_registration_locator_requires_all_fields():
    with pytest.raises(MissingConfiguration) as exc_info:
        parse_registration_locator("xkms://?driver=memdb")
    assert exc_info.value.fields == ["ds", "master_key_url"]


def test_registration_locator_rejects_unknown_keys():
    with pytest.raises(InvalidLocator):
        parse_registration_locator("xkms://?driver=memdb&ds=t&master_key_url=k&pool=5")


def test_default_config_provider_last_wins(defaults, caplog):
    provider = DefaultConfigProvider()
    assert provider.get() is None

    assert provider.set(defaults) is None
    other = defaults.model_copy(update={"table": "rotated"})
    with caplog.at_level(logging.WARNING):
        previous = provider.set(other)

    assert previous == defaults
    assert provider.get() == other
    assert "Default keeper configuration changed" in caplog.text
    assert "hunter2" not in caplog.text


def test_default_config_provider_same_config_is_quiet(defaults, caplog):
    provider = DefaultConfigProvider(defaults)
    with caplog.at_level(logging.WARNING):
        provider.set(defaults)
    assert "changed" not in caplog.text
