from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sealstore.core.errors import StoreError, ValidationFailedError
from sealstore.domain.entities import AUDIT_ADD, AUDIT_DELETE, AUDIT_UPDATE, Variable
from sealstore.domain.models import ApplicationVariableAudit
from sealstore.services.crypto.cipher import FieldCipher


logger = logging.getLogger(__name__)

_AUDIT_KINDS = {AUDIT_ADD, AUDIT_UPDATE, AUDIT_DELETE}


def variable_snapshot(variable: Variable | None) -> dict[str, Any] | None:
    # Snapshots never hold a clear secret, whatever the caller passed in.
    if variable is None:
        return None
    snapshot = variable.model_dump()
    if variable.is_secret():
        snapshot["value"] = FieldCipher.mask(variable.value)
    return snapshot


def record_variable_audit(
    session: Session,
    *,
    application_id: int,
    variable_id: int | None,
    kind: str,
    actor: str | None,
    before: Variable | None = None,
    after: Variable | None = None,
    versioned_at: datetime | None = None,
) -> ApplicationVariableAudit | None:
    # Written in the caller's transaction so a rollback discards it with the mutation.
    if kind not in _AUDIT_KINDS:
        raise ValidationFailedError(f"Unsupported audit kind {kind}")
    if not actor:
        logger.debug(
            "variable_audit_skipped application_id=%s variable_id=%s kind=%s",
            application_id,
            variable_id,
            kind,
        )
        return None
    entry = ApplicationVariableAudit(
        application_id=application_id,
        variable_id=variable_id,
        type=kind,
        author=actor,
        variable_before=variable_snapshot(before),
        variable_after=variable_snapshot(after),
        versioned_at=versioned_at or datetime.now(timezone.utc),
    )
    try:
        session.add(entry)
        session.flush()
    except SQLAlchemyError as exc:
        logger.error(
            "variable_audit_write_failed application_id=%s variable_id=%s kind=%s",
            application_id,
            variable_id,
            kind,
            exc_info=exc,
        )
        raise StoreError("insert", f"application_variable_audit application_id={application_id}", exc) from exc
    return entry
