from __future__ import annotations

import json
from typing import Any

from sqlalchemy import func, select

from sealstore.core.config import PASSWORD_PLACEHOLDER
from sealstore.core.errors import DecryptionFailedError, NotFoundError
from sealstore.domain.entities import IntegrationConfig, IntegrationConfigValue, validate_integration_config
from sealstore.domain.models import ApplicationDeploymentStrategy
from sealstore.persistence.signed import EntityStore
from sealstore.services.crypto.cipher import FieldCipher
from sealstore.services.crypto.utils import stable_json


_ENTITY = "deployment strategy"


def _decrypt_secrets(store: EntityStore, row: ApplicationDeploymentStrategy) -> dict[str, str]:
    if row.cipher_config is None:
        return {}
    raw = store.decrypt_field(row, "cipher_config")
    try:
        secrets = json.loads(raw)
    except ValueError as exc:
        raise DecryptionFailedError("deployment strategy secrets are not valid JSON") from exc
    return {str(name): str(value) for name, value in secrets.items()}


def _to_config(store: EntityStore, row: ApplicationDeploymentStrategy, *, decrypt: bool) -> IntegrationConfig:
    secrets = _decrypt_secrets(store, row) if decrypt else {}
    config: IntegrationConfig = {}
    for name, item in (row.config or {}).items():
        value = IntegrationConfigValue.model_validate(item)
        # Stored password entries only hold the placeholder, or nothing when unset.
        if value.type == "password" and decrypt:
            value.value = secrets.get(name, "")
        config[name] = value
    return config


def _to_values(
    store: EntityStore, application_id: int, integration_name: str, config: IntegrationConfig
) -> dict[str, Any]:
    clear: dict[str, Any] = {}
    secrets: dict[str, str] = {}
    for name, item in config.items():
        dumped = item.model_dump()
        if item.type == "password":
            if item.value:
                secrets[name] = item.value
            dumped["value"] = PASSWORD_PLACEHOLDER if item.value else ""
        clear[name] = dumped
    values: dict[str, Any] = {
        "application_id": application_id,
        "integration_name": integration_name,
        "config": clear,
        "cipher_config": None,
    }
    if secrets:
        values["cipher_config"] = store.encrypt_field(
            ApplicationDeploymentStrategy, "cipher_config", stable_json(secrets).decode("utf-8"), values
        )
    return values


def _select(application_id: int, integration_name: str | None = None):
    stmt = select(ApplicationDeploymentStrategy).where(ApplicationDeploymentStrategy.application_id == application_id)
    if integration_name is not None:
        stmt = stmt.where(ApplicationDeploymentStrategy.integration_name == integration_name)
    return stmt


def _row_present(store: EntityStore, application_id: int, integration_name: str) -> bool:
    count = store.session.scalar(
        select(func.count())
        .select_from(ApplicationDeploymentStrategy)
        .where(
            ApplicationDeploymentStrategy.application_id == application_id,
            ApplicationDeploymentStrategy.integration_name == integration_name,
        )
    )
    return int(count or 0) > 0


def load_deployment_strategies(
    store: EntityStore, application_id: int, *, decrypt: bool = False
) -> dict[str, IntegrationConfig]:
    rows = store.get_all(
        _select(application_id).order_by(ApplicationDeploymentStrategy.integration_name),
        _ENTITY,
    )
    return {row.integration_name: _to_config(store, row, decrypt=decrypt) for row in rows}


def load_deployment_strategy(
    store: EntityStore, application_id: int, integration_name: str, *, decrypt: bool = False
) -> IntegrationConfig:
    row = store.get(_select(application_id, integration_name), _ENTITY)
    return _to_config(store, row, decrypt=decrypt)


def set_deployment_strategy(
    store: EntityStore,
    application_id: int,
    integration_name: str,
    config: IntegrationConfig,
) -> IntegrationConfig:
    validate_integration_config(config)
    existing = store.find(_select(application_id, integration_name), _ENTITY)
    if existing is None and _row_present(store, application_id, integration_name):
        # A stored row failed verification; report it like any missing strategy.
        raise NotFoundError(f"{_ENTITY} not found")
    stored_secrets = _decrypt_secrets(store, existing) if existing is not None else {}

    resolved: IntegrationConfig = {}
    for name, item in config.items():
        if item.type == "password" and FieldCipher.is_placeholder(item.value):
            item = item.model_copy(update={"value": stored_secrets.get(name, "")})
        resolved[name] = item

    values = _to_values(store, application_id, integration_name, resolved)
    if existing is None:
        store.insert(ApplicationDeploymentStrategy(**values))
    else:
        values["id"] = existing.id
        store.update(ApplicationDeploymentStrategy, values)
    return load_deployment_strategy(store, application_id, integration_name)


def delete_deployment_strategy(store: EntityStore, application_id: int, integration_name: str) -> None:
    deleted = store.delete(
        ApplicationDeploymentStrategy,
        ApplicationDeploymentStrategy.application_id == application_id,
        ApplicationDeploymentStrategy.integration_name == integration_name,
    )
    if deleted == 0:
        raise NotFoundError(f"{_ENTITY} not found")


def delete_deployment_strategies_by_application(store: EntityStore, application_id: int) -> int:
    return store.delete(
        ApplicationDeploymentStrategy, ApplicationDeploymentStrategy.application_id == application_id
    )
