from __future__ import annotations

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


# Placeholder returned in place of any sensitive value that was not explicitly decrypted.
PASSWORD_PLACEHOLDER = "**********"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "sealstore"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./sealstore.db"
    # Bound the production pool; ignored for SQLite.
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle_s: int = 1800

    # Key provider backing signatures and field encryption.
    crypto_provider: str = "local"
    # Hex or base64 master key; a deterministic fallback is derived for dev/test when unset.
    crypto_master_key: str | None = None
    # Identifiers recorded alongside ciphertexts and used to derive purpose keys.
    crypto_encryption_key_id: str = "enc-1"
    crypto_signing_key_id: str = "sig-1"

    # Header carrying the acting user for audit trails.
    audit_actor_header: str = "X-Actor"


@lru_cache
def get_settings() -> Settings:
    return Settings()
