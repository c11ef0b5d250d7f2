from __future__ import annotations

from typing import Any

from sqlalchemy import select

from sealstore.core.config import PASSWORD_PLACEHOLDER
from sealstore.core.errors import NotFoundError
from sealstore.domain.entities import AUDIT_ADD, AUDIT_DELETE, AUDIT_UPDATE, Variable
from sealstore.domain.models import ApplicationVariable
from sealstore.persistence.signed import EntityStore
from sealstore.services.audit import record_variable_audit
from sealstore.services.crypto.cipher import FieldCipher


_ENTITY = "application variable"


def _to_entity(store: EntityStore, row: ApplicationVariable, *, decrypt: bool) -> Variable:
    if row.cipher_value is None:
        value = row.clear_value
    elif decrypt:
        value = store.decrypt_field(row, "cipher_value")
    else:
        value = PASSWORD_PLACEHOLDER
    return Variable(id=row.id, name=row.name, type=row.type, value=value)


def _to_values(store: EntityStore, application_id: int, variable: Variable) -> dict[str, Any]:
    values: dict[str, Any] = {
        "application_id": application_id,
        "name": variable.name,
        "type": variable.type,
        "clear_value": "",
        "cipher_value": None,
    }
    if not variable.is_secret():
        values["clear_value"] = variable.value
    elif variable.value:
        values["cipher_value"] = store.encrypt_field(ApplicationVariable, "cipher_value", variable.value, values)
    return values


def _stored_value(store: EntityStore, row: ApplicationVariable) -> str:
    if row.cipher_value is None:
        return row.clear_value
    return store.decrypt_field(row, "cipher_value")


def _select(application_id: int, *, name: str | None = None, variable_id: int | None = None):
    stmt = select(ApplicationVariable).where(ApplicationVariable.application_id == application_id)
    if variable_id is not None:
        stmt = stmt.where(ApplicationVariable.id == variable_id)
    if name is not None:
        stmt = stmt.where(ApplicationVariable.name == name)
    return stmt


def load_variables(store: EntityStore, application_id: int, *, decrypt: bool = False) -> list[Variable]:
    rows = store.get_all(_select(application_id).order_by(ApplicationVariable.name), _ENTITY)
    return [_to_entity(store, row, decrypt=decrypt) for row in rows]


def load_variable(
    store: EntityStore,
    application_id: int,
    name: str,
    *,
    variable_id: int | None = None,
    decrypt: bool = False,
) -> Variable:
    row = store.get(_select(application_id, name=name, variable_id=variable_id), _ENTITY)
    return _to_entity(store, row, decrypt=decrypt)


def insert_variable(
    store: EntityStore,
    application_id: int,
    variable: Variable,
    *,
    actor: str | None,
    keep_clear: bool = False,
) -> Variable:
    variable.validate_entity()
    row = store.insert(ApplicationVariable(**_to_values(store, application_id, variable)))
    inserted = _to_entity(store, row, decrypt=False)
    record_variable_audit(
        store.session,
        application_id=application_id,
        variable_id=inserted.id,
        kind=AUDIT_ADD,
        actor=actor,
        after=inserted,
    )
    if keep_clear:
        # Only the returned copy carries the clear value; the audit snapshot stays masked.
        return inserted.model_copy(update={"value": variable.value})
    return inserted


def update_variable(
    store: EntityStore,
    application_id: int,
    variable: Variable,
    *,
    actor: str | None,
) -> Variable:
    variable.validate_entity()
    # Locate by id when known so a rename still targets the same row.
    if variable.id is not None:
        existing = store.get(_select(application_id, variable_id=variable.id), _ENTITY)
    else:
        existing = store.get(_select(application_id, name=variable.name), _ENTITY)
    before = _to_entity(store, existing, decrypt=False)

    resolved = variable.model_copy(update={"id": existing.id})
    if resolved.is_secret() and FieldCipher.is_placeholder(resolved.value):
        resolved.value = _stored_value(store, existing)

    values = _to_values(store, application_id, resolved)
    values["id"] = existing.id
    store.update(ApplicationVariable, values)

    after = load_variable(store, application_id, resolved.name, variable_id=existing.id)
    record_variable_audit(
        store.session,
        application_id=application_id,
        variable_id=existing.id,
        kind=AUDIT_UPDATE,
        actor=actor,
        before=before,
        after=after,
    )
    return after


def delete_variable(
    store: EntityStore,
    application_id: int,
    name: str,
    *,
    actor: str | None,
) -> None:
    existing = store.get(_select(application_id, name=name), _ENTITY)
    before = _to_entity(store, existing, decrypt=False)
    deleted = store.delete(
        ApplicationVariable,
        ApplicationVariable.application_id == application_id,
        ApplicationVariable.id == existing.id,
    )
    if deleted == 0:
        raise NotFoundError(f"{_ENTITY} not found")
    record_variable_audit(
        store.session,
        application_id=application_id,
        variable_id=existing.id,
        kind=AUDIT_DELETE,
        actor=actor,
        before=before,
    )


def delete_variables_by_application(store: EntityStore, application_id: int) -> int:
    # Bulk removal for application deletion; system-internal, so no audit trail.
    return store.delete(ApplicationVariable, ApplicationVariable.application_id == application_id)
