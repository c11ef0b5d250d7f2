from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class KeyHandle:
    key_id: str
    # Opaque key bytes; excluded from repr so handles never leak into logs.
    material: bytes = field(repr=False)


class KeyProvider(Protocol):
    provider: str

    def signing_key(self) -> KeyHandle:
        ...

    def encryption_key(self, key_id: str | None = None) -> KeyHandle:
        ...
