from __future__ import annotations

import binascii
import logging
import os
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sealstore.core.config import PASSWORD_PLACEHOLDER
from sealstore.core.errors import DecryptionFailedError
from sealstore.services.crypto.keys.base import KeyProvider
from sealstore.services.crypto.utils import b64decode_str, b64encode_bytes, stable_json


logger = logging.getLogger(__name__)

_TOKEN_VERSION = "v1"
_NONCE_SIZE = 12


@dataclass(frozen=True)
class FieldContext:
    # Bind ciphertext to one field of one entity; used as AES-GCM associated data.
    entity: str
    field: str
    owner: dict[str, Any] = field(default_factory=dict)

    def aad(self) -> bytes:
        return stable_json({"entity": self.entity, "field": self.field, "owner": self.owner})


class FieldCipher:
    def __init__(self, key_provider: KeyProvider) -> None:
        self._keys = key_provider

    def encrypt(self, clear: str, context: FieldContext) -> str:
        key = self._keys.encryption_key()
        nonce = os.urandom(_NONCE_SIZE)
        sealed = AESGCM(key.material).encrypt(nonce, clear.encode("utf-8"), context.aad())
        return f"{_TOKEN_VERSION}:{key.key_id}:{b64encode_bytes(nonce + sealed)}"

    def decrypt(self, token: str, context: FieldContext) -> str:
        version, key_id, payload = _split_token(token)
        if version != _TOKEN_VERSION:
            raise DecryptionFailedError(f"unsupported ciphertext version {version}")
        key = self._keys.encryption_key(key_id)
        try:
            raw = b64decode_str(payload)
        except (binascii.Error, ValueError) as exc:
            raise DecryptionFailedError("ciphertext is not valid base64") from exc
        nonce, sealed = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
        try:
            clear = AESGCM(key.material).decrypt(nonce, sealed, context.aad())
        except (InvalidTag, ValueError) as exc:
            logger.warning("field_decrypt_failed entity=%s field=%s", context.entity, context.field)
            raise DecryptionFailedError("ciphertext integrity check failed") from exc
        return clear.decode("utf-8")

    @staticmethod
    def mask(value: str | None) -> str:
        # Empty values have nothing to hide and stay empty.
        if not value:
            return ""
        return PASSWORD_PLACEHOLDER

    @staticmethod
    def is_placeholder(value: str | None) -> bool:
        return value == PASSWORD_PLACEHOLDER


def _split_token(token: str | None) -> tuple[str, str, str]:
    if not token:
        raise DecryptionFailedError("ciphertext is empty")
    parts = token.split(":", 1)
    if len(parts) != 2:
        raise DecryptionFailedError("ciphertext is malformed")
    version, rest = parts
    key_id, sep, payload = rest.rpartition(":")
    if not sep or not key_id or not payload:
        raise DecryptionFailedError("ciphertext is malformed")
    return version, key_id, payload
