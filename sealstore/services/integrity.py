from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy import select

from sealstore.domain.models import (
    Application,
    ApplicationDeploymentStrategy,
    ApplicationKey,
    ApplicationVariable,
    SignedRow,
)
from sealstore.persistence.signed import EntityStore, row_values
from sealstore.services.crypto.canonical import latest_version


logger = logging.getLogger(__name__)

SIGNED_MODELS: dict[str, type[SignedRow]] = {
    model.__tablename__: model
    for model in (Application, ApplicationVariable, ApplicationKey, ApplicationDeploymentStrategy)
}


@dataclass
class SignatureReport:
    table: str
    checked: int = 0
    corrupted_ids: list[int] = field(default_factory=list)
    rolled_ids: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.corrupted_ids


def _rows(store: EntityStore, model: type[SignedRow]) -> list[SignedRow]:
    stmt = select(model).order_by(model.id).execution_options(populate_existing=True)
    return list(store.session.execute(stmt).scalars().all())


def scan_signatures(store: EntityStore, model: type[SignedRow]) -> SignatureReport:
    report = SignatureReport(table=model.__tablename__)
    for row in _rows(store, model):
        report.checked += 1
        if not store.verify(row):
            logger.error("data_corrupted table=%s id=%s", report.table, row.id)
            report.corrupted_ids.append(row.id)
    return report


def roll_signatures(store: EntityStore, model: type[SignedRow]) -> SignatureReport:
    """Re-sign verified rows that are behind the latest canonical generation.

    Corrupted rows are reported and left untouched: re-signing them would
    launder an out-of-band modification.
    """
    report = SignatureReport(table=model.__tablename__)
    target = latest_version(model.__canonical_forms__)
    for row in _rows(store, model):
        report.checked += 1
        if not store.verify(row):
            logger.error("data_corrupted table=%s id=%s", report.table, row.id)
            report.corrupted_ids.append(row.id)
            continue
        if row.canonical_form_version == target:
            continue
        store.update(model, row_values(row))
        report.rolled_ids.append(row.id)
    if report.rolled_ids:
        logger.info(
            "signatures_rolled table=%s rows=%s generation=%s", report.table, len(report.rolled_ids), target
        )
    return report
