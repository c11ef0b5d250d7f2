from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from sealstore.domain.entities import Variable, VariableAudit
from sealstore.domain.models import ApplicationVariableAudit


def _to_entity(row: ApplicationVariableAudit) -> VariableAudit:
    return VariableAudit(
        id=row.id,
        application_id=row.application_id,
        variable_id=row.variable_id,
        type=row.type,
        author=row.author,
        before=Variable.model_validate(row.variable_before) if row.variable_before else None,
        after=Variable.model_validate(row.variable_after) if row.variable_after else None,
        versioned_at=row.versioned_at,
    )


def list_variable_audits(
    session: Session,
    *,
    application_id: int,
    variable_id: int | None = None,
    versioned_from: datetime | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[VariableAudit]:
    # Audit rows survive variable deletion, so scope by application id only.
    stmt = select(ApplicationVariableAudit).where(ApplicationVariableAudit.application_id == application_id)
    if variable_id is not None:
        stmt = stmt.where(ApplicationVariableAudit.variable_id == variable_id)
    if versioned_from is not None:
        stmt = stmt.where(ApplicationVariableAudit.versioned_at >= versioned_from)
    stmt = stmt.order_by(ApplicationVariableAudit.versioned_at.desc(), ApplicationVariableAudit.id.desc())
    stmt = stmt.offset(offset).limit(limit)
    result = session.execute(stmt)
    return [_to_entity(row) for row in result.scalars().all()]
