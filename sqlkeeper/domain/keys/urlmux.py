"""URL-based keeper dispatch.

Routes a locator to the opener registered for its scheme. sqlkeeper
registers its `xkms` opener on the default mux when the package is imported.
"""
import logging
import threading
from typing import Dict, Optional, Protocol
from urllib.parse import SplitResult, urlsplit

from sqlkeeper.core.context import Context
from sqlkeeper.errors import InvalidLocator

from .keeper import LocalKeeper

logger = logging.getLogger(__name__)


class KeeperURLOpener(Protocol):
    def open_keeper_url(self, url: SplitResult, ctx: Optional[Context] = None) -> LocalKeeper:
        ...


class URLMux:
    def __init__(self):
        self._lock = threading.Lock()
        self._openers: Dict[str, KeeperURLOpener] = {}

    def register_keeper(self, scheme: str, opener: KeeperURLOpener) -> None:
        with self._lock:
            if scheme in self._openers:
                raise ValueError(f"scheme {scheme!r} already registered")
            self._openers[scheme] = opener
        logger.debug(f"Registered keeper opener for scheme {scheme}")

    def valid_keeper_scheme(self, scheme: str) -> bool:
        with self._lock:
            return scheme in self._openers

    def open_keeper(self, locator: str, ctx: Optional[Context] = None) -> LocalKeeper:
        try:
            url = urlsplit(locator)
        except ValueError as e:
            raise InvalidLocator(f"malformed locator: {e}", locator=locator) from e
        with self._lock:
            opener = self._openers.get(url.scheme)
        if opener is None:
            raise InvalidLocator(f"no keeper opener registered for scheme {url.scheme!r}", locator=locator)
        return opener.open_keeper_url(url, ctx)


_DEFAULT_MUX = URLMux()


def default_url_mux() -> URLMux:
    return _DEFAULT_MUX
