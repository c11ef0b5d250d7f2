from __future__ import annotations


class SealStoreError(Exception):
    """Base error for sealstore."""


class NotFoundError(SealStoreError):
    """No row matched, or the matching row failed signature verification."""


class AlreadyExistsError(SealStoreError):
    """Uniqueness violation on insert."""


class ValidationFailedError(SealStoreError):
    """Entity failed structural checks; the store was never touched."""


class DecryptionFailedError(SealStoreError):
    """Ciphertext failed its integrity check or its key is unavailable."""


class ForbiddenError(SealStoreError):
    """Mutation refused, e.g. on an application managed from a repository."""


class SignatureMismatchError(SealStoreError):
    """Internal only; converted to NotFoundError or a dropped row before leaving the store."""

    def __init__(self, table: str, row_id: object) -> None:
        super().__init__(f"signature mismatch on {table} id={row_id}")
        self.table = table
        self.row_id = row_id


class StoreError(SealStoreError):
    """Relational store failure, annotated with the operation and entity identity."""

    def __init__(self, operation: str, entity: str, cause: Exception) -> None:
        super().__init__(f"{operation} {entity}: {cause}")
        self.operation = operation
        self.entity = entity
        self.cause = cause


class KeyUnavailableError(DecryptionFailedError):
    """The key provider has no key for the requested identifier."""
