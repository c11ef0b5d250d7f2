from __future__ import annotations

from sealstore.core.config import get_settings
from sealstore.services.crypto.keys.base import KeyHandle, KeyProvider
from sealstore.services.crypto.keys.local import LocalKeyProvider


_KEY_PROVIDERS: dict[str, type[LocalKeyProvider]] = {
    "local": LocalKeyProvider,
}


def get_key_provider() -> KeyProvider:
    settings = get_settings()
    provider_name = settings.crypto_provider
    provider_cls = _KEY_PROVIDERS.get(provider_name)
    if provider_cls is None:
        raise ValueError(f"Unsupported key provider: {provider_name}")
    return provider_cls()


__all__ = ["KeyHandle", "KeyProvider", "LocalKeyProvider", "get_key_provider"]
