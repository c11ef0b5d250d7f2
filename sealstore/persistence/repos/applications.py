from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select

from sealstore.core.errors import NotFoundError, ValidationFailedError
from sealstore.domain.entities import Application, IDName, RepositoryStrategy
from sealstore.domain.models import Application as ApplicationRow
from sealstore.persistence.repos.deployment_strategies import delete_deployment_strategies_by_application
from sealstore.persistence.repos.keys import delete_keys_by_application
from sealstore.persistence.repos.load_options import LoadOption, apply_load_options
from sealstore.persistence.repos.variables import delete_variables_by_application
from sealstore.persistence.signed import EntityStore
from sealstore.services.crypto.cipher import FieldCipher


_ENTITY = "application"


def _to_entity(store: EntityStore, row: ApplicationRow, *, decrypt: bool) -> Application:
    if row.vcs_cipher_password is None:
        password = ""
    elif decrypt:
        password = store.decrypt_field(row, "vcs_cipher_password")
    else:
        password = FieldCipher.mask(row.vcs_cipher_password)
    return Application(
        id=row.id,
        project_id=row.project_id,
        name=row.name,
        description=row.description,
        repository_fullname=row.repo_fullname,
        vcs_server=row.vcs_server,
        repository_strategy=RepositoryStrategy(
            connection_type=row.vcs_connection_type,
            user=row.vcs_user,
            password=password,
            ssh_key=row.vcs_ssh_key,
            pgp_key=row.vcs_pgp_key,
            branch=row.vcs_branch,
        ),
        from_repository=row.from_repository,
        metadata=dict(row.metadata_json or {}),
        last_modified=row.last_modified,
    )


def _to_values(store: EntityStore, app: Application, *, icon: str) -> dict[str, Any]:
    strategy = app.repository_strategy
    values: dict[str, Any] = {
        "project_id": app.project_id,
        "name": app.name,
        "description": app.description,
        "icon": icon,
        "repo_fullname": app.repository_fullname,
        "vcs_server": app.vcs_server,
        "vcs_connection_type": strategy.connection_type,
        "vcs_user": strategy.user,
        "vcs_ssh_key": strategy.ssh_key,
        "vcs_pgp_key": strategy.pgp_key,
        "vcs_branch": strategy.branch,
        "vcs_cipher_password": None,
        "from_repository": app.from_repository,
        "metadata_json": dict(app.metadata),
    }
    if strategy.password:
        values["vcs_cipher_password"] = store.encrypt_field(
            ApplicationRow, "vcs_cipher_password", strategy.password, values
        )
    return values


def _get(
    store: EntityStore, stmt, options: Iterable[LoadOption | str], *, decrypt: bool
) -> Application:
    row = store.get(stmt, _ENTITY)
    app = _to_entity(store, row, decrypt=decrypt)
    apply_load_options(store, [app], options)
    return app


def _get_all(
    store: EntityStore, stmt, options: Iterable[LoadOption | str], *, decrypt: bool
) -> list[Application]:
    rows = store.get_all(stmt, _ENTITY)
    apps = [_to_entity(store, row, decrypt=decrypt) for row in rows]
    apply_load_options(store, apps, options)
    return apps


def exists(store: EntityStore, project_id: int, name: str) -> bool:
    # Verified like any read, so a corrupted application does not exist.
    stmt = select(ApplicationRow).where(ApplicationRow.project_id == project_id, ApplicationRow.name == name)
    return store.find(stmt, _ENTITY) is not None


def load_by_id(
    store: EntityStore, application_id: int, *options: LoadOption | str, decrypt: bool = False
) -> Application:
    return _get(store, select(ApplicationRow).where(ApplicationRow.id == application_id), options, decrypt=decrypt)


def load_by_project_and_name(
    store: EntityStore, project_id: int, name: str, *options: LoadOption | str, decrypt: bool = False
) -> Application:
    stmt = select(ApplicationRow).where(ApplicationRow.project_id == project_id, ApplicationRow.name == name)
    return _get(store, stmt, options, decrypt=decrypt)


def load_all(
    store: EntityStore, project_id: int, *options: LoadOption | str, decrypt: bool = False
) -> list[Application]:
    stmt = select(ApplicationRow).where(ApplicationRow.project_id == project_id).order_by(ApplicationRow.name)
    return _get_all(store, stmt, options, decrypt=decrypt)


def load_all_by_repository(store: EntityStore, project_id: int, repository: str) -> list[Application]:
    stmt = (
        select(ApplicationRow)
        .where(ApplicationRow.project_id == project_id, ApplicationRow.from_repository == repository)
        .order_by(ApplicationRow.name)
    )
    return _get_all(store, stmt, (), decrypt=False)


def load_all_names(store: EntityStore, project_id: int) -> list[IDName]:
    # Full rows are read so corrupted applications are dropped here too.
    stmt = select(ApplicationRow).where(ApplicationRow.project_id == project_id).order_by(ApplicationRow.name)
    return [
        IDName(id=row.id, name=row.name, description=row.description, icon=row.icon)
        for row in store.get_all(stmt, _ENTITY)
    ]


def load_icon(store: EntityStore, application_id: int) -> str:
    row = store.get(select(ApplicationRow).where(ApplicationRow.id == application_id), _ENTITY)
    return row.icon


def insert_application(
    store: EntityStore, project_id: int, app: Application, *, keep_clear: bool = False
) -> Application:
    candidate = app.model_copy(update={"project_id": project_id}, deep=True)
    candidate.validate_entity()
    strategy = candidate.repository_strategy
    if not strategy.uses_password():
        strategy.password = ""
    elif FieldCipher.is_placeholder(strategy.password):
        # Nothing is stored yet, so a placeholder cannot stand for a real secret.
        raise ValidationFailedError("A new application cannot take a placeholder password")
    row = store.insert(ApplicationRow(**_to_values(store, candidate, icon=candidate.icon or "")))
    inserted = _to_entity(store, row, decrypt=False)
    if keep_clear:
        inserted.repository_strategy.password = strategy.password
    return inserted


def update_application(store: EntityStore, app: Application, *, keep_clear: bool = False) -> Application:
    if app.id is None:
        raise ValidationFailedError("application id is required for an update")
    candidate = app.model_copy(deep=True)
    candidate.validate_entity()
    existing = store.get(select(ApplicationRow).where(ApplicationRow.id == candidate.id), _ENTITY)
    if candidate.project_id is None:
        candidate.project_id = existing.project_id

    # Passwordless connection types win over a submitted placeholder.
    strategy = candidate.repository_strategy
    if not strategy.uses_password():
        strategy.password = ""
    elif FieldCipher.is_placeholder(strategy.password):
        strategy.password = (
            store.decrypt_field(existing, "vcs_cipher_password") if existing.vcs_cipher_password else ""
        )

    icon = existing.icon if candidate.icon is None else candidate.icon
    values = _to_values(store, candidate, icon=icon)
    values["id"] = candidate.id
    store.update(ApplicationRow, values)
    return load_by_id(store, candidate.id, decrypt=keep_clear)


def delete_application(store: EntityStore, application_id: int) -> None:
    # Audit history is kept; owned aggregates go with the application.
    delete_variables_by_application(store, application_id)
    delete_keys_by_application(store, application_id)
    delete_deployment_strategies_by_application(store, application_id)
    deleted = store.delete(ApplicationRow, ApplicationRow.id == application_id)
    if deleted == 0:
        raise NotFoundError(f"{_ENTITY} not found")
