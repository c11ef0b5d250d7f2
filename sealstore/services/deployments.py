from __future__ import annotations

import logging

from sealstore.core.errors import ForbiddenError, NotFoundError
from sealstore.domain.entities import Application, IntegrationConfig, merge_integration_config
from sealstore.persistence.repos.applications import load_by_project_and_name
from sealstore.persistence.repos.deployment_strategies import (
    delete_deployment_strategy,
    set_deployment_strategy,
)
from sealstore.persistence.repos.load_options import LoadOption
from sealstore.persistence.signed import EntityStore


logger = logging.getLogger(__name__)


def _ensure_mutable(app: Application) -> None:
    if app.from_repository:
        raise ForbiddenError(f"application {app.name} is managed from repository {app.from_repository}")


def set_application_deployment_strategy(
    store: EntityStore,
    project_id: int,
    application_name: str,
    integration_name: str,
    config: IntegrationConfig,
    *,
    default_config: IntegrationConfig | None = None,
) -> Application:
    app = load_by_project_and_name(
        store, project_id, application_name, LoadOption.WITH_CLEAR_DEPLOYMENT_STRATEGIES
    )
    _ensure_mutable(app)
    strategies = app.deployment_strategies or {}
    # Start from the stored config, or the integration defaults for a first setup.
    base = strategies.get(integration_name)
    if base is None:
        base = default_config or {}
    merged = merge_integration_config(base, config)
    set_deployment_strategy(store, app.id, integration_name, merged)
    logger.info(
        "deployment_strategy_set application_id=%s integration=%s settings=%s",
        app.id,
        integration_name,
        len(merged),
    )
    return load_by_project_and_name(store, project_id, application_name, LoadOption.WITH_DEPLOYMENT_STRATEGIES)


def delete_application_deployment_strategy(
    store: EntityStore,
    project_id: int,
    application_name: str,
    integration_name: str,
) -> Application:
    app = load_by_project_and_name(store, project_id, application_name, LoadOption.WITH_DEPLOYMENT_STRATEGIES)
    _ensure_mutable(app)
    if integration_name not in (app.deployment_strategies or {}):
        raise NotFoundError("deployment strategy not found")
    delete_deployment_strategy(store, app.id, integration_name)
    logger.info("deployment_strategy_deleted application_id=%s integration=%s", app.id, integration_name)
    return load_by_project_and_name(store, project_id, application_name, LoadOption.WITH_DEPLOYMENT_STRATEGIES)
