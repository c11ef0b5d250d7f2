from __future__ import annotations

import hashlib
import hmac
from typing import Final

from sealstore.core.config import get_settings
from sealstore.core.errors import KeyUnavailableError
from sealstore.services.crypto.keys.base import KeyHandle
from sealstore.services.crypto.utils import decode_key_material


class LocalKeyProvider:
    provider: Final[str] = "local"

    def __init__(
        self,
        master_key: bytes | None = None,
        *,
        encryption_key_id: str | None = None,
        signing_key_id: str | None = None,
    ) -> None:
        settings = get_settings()
        self._master_key = _ensure_32_bytes(master_key) if master_key is not None else _load_master_key()
        self._encryption_key_id = encryption_key_id or settings.crypto_encryption_key_id
        self._signing_key_id = signing_key_id or settings.crypto_signing_key_id

    def signing_key(self) -> KeyHandle:
        return KeyHandle(
            key_id=self._signing_key_id,
            material=_derive_key(self._master_key, purpose="signing", key_id=self._signing_key_id),
        )

    def encryption_key(self, key_id: str | None = None) -> KeyHandle:
        # Only the configured key id resolves; anything else is an unknown key.
        resolved = key_id or self._encryption_key_id
        if resolved != self._encryption_key_id:
            raise KeyUnavailableError(f"encryption key {resolved} is not available")
        return KeyHandle(
            key_id=resolved,
            material=_derive_key(self._master_key, purpose="encryption", key_id=resolved),
        )


def _load_master_key() -> bytes:
    settings = get_settings()
    if settings.crypto_master_key:
        return _ensure_32_bytes(decode_key_material(settings.crypto_master_key))
    # Deterministic fallback for dev/test to avoid breaking local workflows.
    seed = f"{settings.app_name}-local-master".encode("utf-8")
    return hashlib.sha256(seed).digest()


def _derive_key(master_key: bytes, *, purpose: str, key_id: str) -> bytes:
    # Separate signing and encryption keys so neither can stand in for the other.
    message = f"{purpose}:{key_id}".encode("utf-8")
    return hmac.new(master_key, message, hashlib.sha256).digest()


def _ensure_32_bytes(value: bytes) -> bytes:
    if len(value) == 32:
        return value
    return hashlib.sha256(value).digest()
