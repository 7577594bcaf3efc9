"""Locator parsing.

Locators look like:

    xkms://20190803?driver=postgres&ds=<data source>&master_key_url=gcpkms://...&table=secret_key

The authority is the key id; the query carries the configuration. Query
values overlay a default configuration so that terse, id-only locators
resolve against the most recently registered configuration.
"""
import logging
import re
import threading
from typing import Dict, List, Optional, Tuple
from urllib.parse import SplitResult, parse_qs, urlsplit

from sqlkeeper.errors import InvalidKeyID, InvalidLocator, MissingConfiguration

from .models import DEFAULT_TABLE, ConnectionIdentity, KeeperConfig

logger = logging.getLogger(__name__)

SCHEME = "xkms"

PARAM_DRIVER = "driver"
PARAM_DATA_SOURCE = "ds"
PARAM_MASTER_KEY_URL = "master_key_url"
PARAM_TABLE = "table"
ALLOWED_PARAMS = (PARAM_DRIVER, PARAM_DATA_SOURCE, PARAM_MASTER_KEY_URL, PARAM_TABLE)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
_KEY_ID_PATTERN = re.compile(r"^[+-]?[0-9]+$")


class DefaultConfigProvider:
    """Single-slot holder of the default configuration (last registered wins)."""

    def __init__(self, initial: Optional[KeeperConfig] = None):
        self._lock = threading.Lock()
        self._config = initial

    def get(self) -> Optional[KeeperConfig]:
        with self._lock:
            return self._config

    def set(self, config: KeeperConfig) -> Optional[KeeperConfig]:
        """Replace the default and return the previous one."""
        with self._lock:
            previous, self._config = self._config, config
        if previous is not None and previous != config:
            logger.warning(
                f"Default keeper configuration changed from {previous.connection.redacted()} "
                f"(table={previous.table}) to {config.connection.redacted()} (table={config.table}); "
                f"id-only locators now resolve against the new configuration"
            )
        return previous

    def clear(self) -> None:
        with self._lock:
            self._config = None


def split_locator(locator: str) -> SplitResult:
    try:
        url = urlsplit(locator)
    except ValueError as e:
        raise InvalidLocator(f"malformed locator: {e}", locator=locator) from e
    if url.scheme != SCHEME:
        raise InvalidLocator(f"unsupported scheme {url.scheme!r}, expected {SCHEME!r}", locator=locator)
    return url


def parse_query(url: SplitResult, locator: str) -> Dict[str, str]:
    """Return the first value of each recognized parameter."""
    params = parse_qs(url.query, keep_blank_values=True)
    for name in params:
        if name not in ALLOWED_PARAMS:
            raise InvalidLocator(f"invalid query parameter {name!r}", locator=locator, parameter=name)
    return {name: values[0] for name, values in params.items() if values}


def parse_key_id(raw: str, locator: Optional[str] = None) -> int:
    if not _KEY_ID_PATTERN.match(raw):
        raise InvalidKeyID(raw, locator=locator)
    key_id = int(raw)
    if not INT64_MIN <= key_id <= INT64_MAX:
        raise InvalidKeyID(raw, locator=locator)
    return key_id


def _build_config(
    driver: str, data_source: str, master_key_url: str, table: str, locator: str
) -> KeeperConfig:
    missing: List[str] = []
    if not driver:
        missing.append(PARAM_DRIVER)
    if not data_source:
        missing.append(PARAM_DATA_SOURCE)
    if not master_key_url:
        missing.append(PARAM_MASTER_KEY_URL)
    if not table:
        missing.append(PARAM_TABLE)
    if missing:
        raise MissingConfiguration(missing, locator=locator)
    return KeeperConfig(
        connection=ConnectionIdentity(driver=driver, data_source=data_source),
        table=table,
        master_key_url=master_key_url,
    )


def parse_locator(
    locator: str,
    defaults: Optional[KeeperConfig] = None,
    default_table: str = DEFAULT_TABLE,
) -> Tuple[int, KeeperConfig]:
    """Parse a keeper locator into (key id, configuration).

    Non-empty query values override the matching field of `defaults`.
    """
    url = split_locator(locator)
    query = parse_query(url, locator)
    key_id = parse_key_id(url.netloc, locator)

    driver = data_source = master_key_url = table = ""
    if defaults is not None:
        driver = defaults.connection.driver
        data_source = defaults.connection.data_source
        master_key_url = defaults.master_key_url
        table = defaults.table

    driver = query.get(PARAM_DRIVER) or driver
    data_source = query.get(PARAM_DATA_SOURCE) or data_source
    master_key_url = query.get(PARAM_MASTER_KEY_URL) or master_key_url
    table = query.get(PARAM_TABLE) or table or default_table

    return key_id, _build_config(driver, data_source, master_key_url, table, locator)


def parse_registration_locator(locator: str, default_table: str = DEFAULT_TABLE) -> KeeperConfig:
    """Parse the locator given to init/register. No key id, no default overlay."""
    url = split_locator(locator)
    query = parse_query(url, locator)
    return _build_config(
        query.get(PARAM_DRIVER, ""),
        query.get(PARAM_DATA_SOURCE, ""),
        query.get(PARAM_MASTER_KEY_URL, ""),
        query.get(PARAM_TABLE) or default_table,
        locator,
    )
