from __future__ import annotations

import pytest

from sealstore.core.config import get_settings
from sealstore.core.errors import KeyUnavailableError
from sealstore.services.crypto.keys import get_key_provider
from sealstore.services.crypto.keys.local import LocalKeyProvider


def test_signing_and_encryption_keys_are_distinct() -> None:
    provider = LocalKeyProvider(b"\x01" * 32)
    signing = provider.signing_key()
    encryption = provider.encryption_key()
    assert signing.key_id == "sig-1"
    assert encryption.key_id == "enc-1"
    assert len(signing.material) == 32
    assert len(encryption.material) == 32
    assert signing.material != encryption.material


def test_keys_are_stable_for_the_same_master() -> None:
    first = LocalKeyProvider(b"\x01" * 32)
    second = LocalKeyProvider(b"\x01" * 32)
    assert first.signing_key() == second.signing_key()
    assert first.encryption_key("enc-1") == second.encryption_key()


def test_short_master_keys_are_stretched() -> None:
    provider = LocalKeyProvider(b"short")
    assert len(provider.encryption_key().material) == 32


def test_unknown_encryption_key_id_is_unavailable() -> None:
    provider = LocalKeyProvider(b"\x01" * 32)
    with pytest.raises(KeyUnavailableError):
        provider.encryption_key("enc-0")


def test_master_key_is_read_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("CRYPTO_MASTER_KEY", "01" * 32)
    monkeypatch.setenv("CRYPTO_SIGNING_KEY_ID", "sig-9")
    get_settings.cache_clear()
    provider = get_key_provider()
    assert provider.signing_key().key_id == "sig-9"
    assert provider.signing_key() == LocalKeyProvider(b"\x01" * 32, signing_key_id="sig-9").signing_key()


def test_unsupported_provider_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("CRYPTO_PROVIDER", "vault")
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        get_key_provider()
