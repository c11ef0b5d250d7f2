from __future__ import annotations

from typing import Any

from sqlalchemy import select

from sealstore.core.errors import NotFoundError
from sealstore.domain.entities import ApplicationKey
from sealstore.domain.models import ApplicationKey as ApplicationKeyRow
from sealstore.persistence.signed import EntityStore
from sealstore.services.crypto.cipher import FieldCipher


_ENTITY = "application key"


def _to_entity(store: EntityStore, row: ApplicationKeyRow, *, decrypt: bool) -> ApplicationKey:
    if row.cipher_private is None:
        private = ""
    elif decrypt:
        private = store.decrypt_field(row, "cipher_private")
    else:
        private = FieldCipher.mask(row.cipher_private)
    return ApplicationKey(
        id=row.id,
        application_id=row.application_id,
        name=row.name,
        type=row.type,
        public=row.public,
        private=private,
        key_id=row.key_id,
    )


def _to_values(store: EntityStore, application_id: int, key: ApplicationKey) -> dict[str, Any]:
    values: dict[str, Any] = {
        "application_id": application_id,
        "name": key.name,
        "type": key.type,
        "public": key.public,
        "key_id": key.key_id,
        "cipher_private": None,
    }
    if key.private:
        values["cipher_private"] = store.encrypt_field(ApplicationKeyRow, "cipher_private", key.private, values)
    return values


def load_keys(store: EntityStore, application_id: int, *, decrypt: bool = False) -> list[ApplicationKey]:
    rows = store.get_all(
        select(ApplicationKeyRow)
        .where(ApplicationKeyRow.application_id == application_id)
        .order_by(ApplicationKeyRow.name),
        _ENTITY,
    )
    return [_to_entity(store, row, decrypt=decrypt) for row in rows]


def load_key(store: EntityStore, application_id: int, name: str, *, decrypt: bool = False) -> ApplicationKey:
    row = store.get(
        select(ApplicationKeyRow).where(
            ApplicationKeyRow.application_id == application_id,
            ApplicationKeyRow.name == name,
        ),
        _ENTITY,
    )
    return _to_entity(store, row, decrypt=decrypt)


def insert_key(
    store: EntityStore, application_id: int, key: ApplicationKey, *, keep_clear: bool = False
) -> ApplicationKey:
    key.validate_entity()
    row = store.insert(ApplicationKeyRow(**_to_values(store, application_id, key)))
    inserted = _to_entity(store, row, decrypt=False)
    if keep_clear:
        inserted.private = key.private
    return inserted


def delete_key(store: EntityStore, application_id: int, name: str) -> None:
    deleted = store.delete(
        ApplicationKeyRow,
        ApplicationKeyRow.application_id == application_id,
        ApplicationKeyRow.name == name,
    )
    if deleted == 0:
        raise NotFoundError(f"{_ENTITY} not found")


def delete_keys_by_application(store: EntityStore, application_id: int) -> int:
    return store.delete(ApplicationKeyRow, ApplicationKeyRow.application_id == application_id)
