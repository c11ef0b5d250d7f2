from __future__ import annotations

import hashlib
import hmac
import re

from sealstore.services.crypto.keys.base import KeyHandle


# Exactly what sign() emits: lowercase hex, no separators.
_SIGNATURE_RE = re.compile(r"[0-9a-f]{64}")


def sign(canonical: str, key: KeyHandle) -> str:
    # HMAC rather than a bare hash: row-write access alone cannot forge signatures.
    return hmac.new(key.material, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def verify(canonical: str, signature: str | bytes | None, key: KeyHandle) -> bool:
    # Missing or unparseable signatures are plain mismatches.
    if not signature:
        return False
    if isinstance(signature, bytes):
        try:
            signature = signature.decode("ascii")
        except UnicodeDecodeError:
            return False
    if not _SIGNATURE_RE.fullmatch(signature):
        return False
    return hmac.compare_digest(signature, sign(canonical, key))
