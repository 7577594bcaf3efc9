"""Local encryption handle and key generation.

LocalKeeper performs AES-256-GCM with raw key bytes handed to it by the
resolver. Ciphertexts are laid out as nonce (12 bytes) || ciphertext || tag.
"""
import logging
import os
import secrets
from typing import Callable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sqlkeeper.core.context import Context, ensure_context
from sqlkeeper.errors import KeyGenerationFailure

from .models import KEY_SIZE

logger = logging.getLogger(__name__)

NONCE_SIZE = 12

KeyGenerator = Callable[[], bytes]


class LocalKeeper:
    """Symmetric keeper wrapping exactly 32 bytes of key material."""

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"LocalKeeper requires a {KEY_SIZE}-byte key, got {len(key)}")
        self._key = bytes(key)
        self._aesgcm: Optional[AESGCM] = AESGCM(self._key)

    @property
    def key(self) -> bytes:
        return self._key

    @property
    def closed(self) -> bool:
        return self._aesgcm is None

    def encrypt(self, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
        aesgcm = self._require_open()
        nonce = os.urandom(NONCE_SIZE)
        return nonce + aesgcm.encrypt(nonce, plaintext, aad)

    def decrypt(self, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
        aesgcm = self._require_open()
        if len(ciphertext) < NONCE_SIZE + 16:
            raise ValueError("DECRYPT_FAILED: ciphertext too short")
        nonce, body = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        try:
            return aesgcm.decrypt(nonce, body, aad)
        except InvalidTag:
            raise ValueError("DECRYPT_FAILED: Authentication tag mismatch or key mismatch.")

    def close(self) -> None:
        self._aesgcm = None

    def __enter__(self) -> "LocalKeeper":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LocalKeeper(closed={self.closed})"

    def _require_open(self) -> AESGCM:
        if self._aesgcm is None:
            raise RuntimeError("KEEPER_CLOSED: keeper has been closed")
        return self._aesgcm


def new_random_key() -> bytes:
    return secrets.token_bytes(KEY_SIZE)


def generate_key(
    generator: KeyGenerator = new_random_key,
    ctx: Optional[Context] = None,
    key_id: Optional[int] = None,
) -> bytes:
    """Draw fresh key material from a cryptographically secure source."""
    ensure_context(ctx).check("generate_key")
    try:
        key = generator()
    except (OSError, NotImplementedError) as e:
        logger.error(f"Random source unavailable while generating key id={key_id}: {e}")
        raise KeyGenerationFailure(f"random source unavailable: {e}", key_id=key_id) from e
    if len(key) != KEY_SIZE:
        raise KeyGenerationFailure(
            f"random source returned {len(key)} bytes, expected {KEY_SIZE}", key_id=key_id
        )
    return key
