"""Signed and encrypted row persistence.

``EntityStore`` wraps a caller-owned SQLAlchemy session. Writes encrypt the
sensitive columns declared in ``__encrypted_fields__`` and sign the row with
the latest generation of ``__canonical_forms__``; reads verify the signature
against the generation recorded on the row. Rows that fail verification are
logged and treated as absent. The store flushes but never commits: the caller
owns the transaction.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

from sqlalchemy import Select, delete, inspect as sa_inspect, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sealstore.core.errors import AlreadyExistsError, NotFoundError, SignatureMismatchError, StoreError
from sealstore.domain.models import SignedRow
from sealstore.services.crypto import signer
from sealstore.services.crypto.canonical import UnknownGenerationError, canonical_form, latest_version
from sealstore.services.crypto.cipher import FieldCipher, FieldContext
from sealstore.services.crypto.keys import KeyProvider, get_key_provider


logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=SignedRow)

# Columns the store manages itself; never part of a caller's update payload.
_MANAGED_COLUMNS = frozenset({"id", "signature", "canonical_form_version", "last_modified"})


def row_values(row: Any) -> dict[str, Any]:
    mapper = sa_inspect(type(row))
    return {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == "23505":
        return True
    return "unique" in str(orig).lower()


class EntityStore:
    def __init__(self, session: Session, keys: KeyProvider | None = None) -> None:
        self.session = session
        self.keys = keys or get_key_provider()
        self.cipher = FieldCipher(self.keys)

    def field_context(self, model: type[SignedRow], column: str, values: Mapping[str, Any]) -> FieldContext:
        owner_columns = model.__encrypted_fields__[column]
        return FieldContext(
            entity=model.__tablename__,
            field=column,
            owner={name: values.get(name) for name in owner_columns},
        )

    def encrypt_field(
        self, model: type[SignedRow], column: str, clear: str, values: Mapping[str, Any]
    ) -> str:
        return self.cipher.encrypt(clear, self.field_context(model, column, values))

    def decrypt_field(self, row: SignedRow, column: str) -> str:
        # Decryption failures propagate; a secret is never replaced by an empty value.
        token = getattr(row, column)
        return self.cipher.decrypt(token, self.field_context(type(row), column, row_values(row)))

    def sign_values(
        self, model: type[SignedRow], values: Mapping[str, Any], version: int | None = None
    ) -> tuple[str, int]:
        resolved = latest_version(model.__canonical_forms__) if version is None else version
        canonical = canonical_form(model.__canonical_forms__, values, resolved)
        return signer.sign(canonical, self.keys.signing_key()), resolved

    def verify(self, row: SignedRow) -> bool:
        model = type(row)
        try:
            canonical = canonical_form(model.__canonical_forms__, row_values(row), row.canonical_form_version)
        except (UnknownGenerationError, KeyError):
            return False
        return signer.verify(canonical, row.signature, self.keys.signing_key())

    def _checked(self, row: RowT) -> RowT:
        if not self.verify(row):
            raise SignatureMismatchError(row.__tablename__, getattr(row, "id", None))
        return row

    def _execute(self, operation: str, entity: str, stmt: Any) -> Any:
        try:
            return self.session.execute(stmt)
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise AlreadyExistsError(f"{entity} already exists") from exc
            raise StoreError(operation, entity, exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(operation, entity, exc) from exc

    def get(self, stmt: Select[Any], entity: str) -> Any:
        result = self._execute("select", entity, stmt.execution_options(populate_existing=True))
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"{entity} not found")
        try:
            return self._checked(row)
        except SignatureMismatchError as exc:
            logger.error("data_corrupted table=%s id=%s", exc.table, exc.row_id)
            # Callers only ever see "not found" for a corrupted row.
            raise NotFoundError(f"{entity} not found") from None

    def find(self, stmt: Select[Any], entity: str) -> Any | None:
        try:
            return self.get(stmt, entity)
        except NotFoundError:
            return None

    def get_all(self, stmt: Select[Any], entity: str) -> list[Any]:
        result = self._execute("select", entity, stmt.execution_options(populate_existing=True))
        rows: list[Any] = []
        for row in result.scalars().all():
            try:
                rows.append(self._checked(row))
            except SignatureMismatchError as exc:
                logger.error("data_corrupted table=%s id=%s", exc.table, exc.row_id)
        return rows

    def insert(self, row: RowT) -> RowT:
        model = type(row)
        entity = model.__tablename__
        try:
            self.session.add(row)
            self.session.flush()
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise AlreadyExistsError(f"{entity} already exists") from exc
            raise StoreError("insert", entity, exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError("insert", entity, exc) from exc
        # The primary key is part of the signed form, so sign once it is assigned.
        row.signature, row.canonical_form_version = self.sign_values(model, row_values(row))
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreError("sign", f"{entity} id={row.id}", exc) from exc
        return row

    def update(self, model: type[SignedRow], values: Mapping[str, Any]) -> None:
        row_id = values["id"]
        entity = f"{model.__tablename__} id={row_id}"
        signature, version = self.sign_values(model, values)
        payload = {key: value for key, value in values.items() if key not in _MANAGED_COLUMNS}
        stmt = (
            update(model)
            .where(model.id == row_id)
            .values(**payload, signature=signature, canonical_form_version=version)
        )
        result = self._execute("update", entity, stmt)
        # Zero rows means the identity vanished, e.g. a concurrent delete.
        if result.rowcount == 0:
            raise NotFoundError(f"{model.__tablename__} not found")

    def delete(self, model: type[SignedRow], *criteria: Any) -> int:
        result = self._execute("delete", model.__tablename__, delete(model).where(*criteria))
        return int(result.rowcount or 0)
