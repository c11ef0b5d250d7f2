from __future__ import annotations

import json

import pytest
from sqlalchemy import select, update

from sealstore.core.config import PASSWORD_PLACEHOLDER
from sealstore.core.errors import ForbiddenError, NotFoundError
from sealstore.domain.entities import Application, IntegrationConfigValue
from sealstore.domain.models import ApplicationDeploymentStrategy
from sealstore.persistence.repos.applications import insert_application
from sealstore.persistence.repos.deployment_strategies import load_deployment_strategy, set_deployment_strategy
from sealstore.services.deployments import (
    delete_application_deployment_strategy,
    set_application_deployment_strategy,
)


def _value(kind: str, value: str) -> IntegrationConfigValue:
    return IntegrationConfigValue(type=kind, value=value)


@pytest.fixture
def app(store) -> Application:
    return insert_application(store, 42, Application(name="svc-a"))


def test_first_setup_merges_with_defaults(store, app) -> None:
    defaults = {"namespace": _value("string", "default"), "timeout": _value("number", "30")}
    result = set_application_deployment_strategy(
        store,
        42,
        "svc-a",
        "kube",
        {"namespace": _value("string", "prod"), "token": _value("password", "kt")},
        default_config=defaults,
    )
    config = result.deployment_strategies["kube"]
    assert config["namespace"].value == "prod"
    assert config["timeout"].value == "30"
    assert config["token"].value == PASSWORD_PLACEHOLDER


def test_secrets_live_only_in_the_encrypted_column(store, session, app) -> None:
    set_application_deployment_strategy(store, 42, "svc-a", "kube", {"token": _value("password", "kt")})
    row = session.scalars(select(ApplicationDeploymentStrategy)).one()
    assert "kt" not in json.dumps(row.config)
    assert row.config["token"]["value"] == PASSWORD_PLACEHOLDER
    assert row.cipher_config.startswith("v1:")


def test_placeholder_keeps_the_stored_secret(store, app) -> None:
    set_application_deployment_strategy(
        store, 42, "svc-a", "kube", {"token": _value("password", "kt"), "namespace": _value("string", "a")}
    )
    set_application_deployment_strategy(
        store,
        42,
        "svc-a",
        "kube",
        {"token": _value("password", PASSWORD_PLACEHOLDER), "namespace": _value("string", "b")},
    )
    clear = load_deployment_strategy(store, app.id, "kube", decrypt=True)
    assert clear["token"].value == "kt"
    assert clear["namespace"].value == "b"


def test_settings_missing_from_update_are_kept(store, app) -> None:
    set_application_deployment_strategy(
        store, 42, "svc-a", "kube", {"token": _value("password", "kt"), "namespace": _value("string", "a")}
    )
    set_application_deployment_strategy(store, 42, "svc-a", "kube", {"namespace": _value("string", "b")})
    clear = load_deployment_strategy(store, app.id, "kube", decrypt=True)
    assert clear["token"].value == "kt"


def test_empty_password_is_stored_empty(store, app) -> None:
    set_application_deployment_strategy(store, 42, "svc-a", "kube", {"token": _value("password", "")})
    masked = load_deployment_strategy(store, app.id, "kube")
    assert masked["token"].value == ""


def test_repository_managed_application_is_read_only(store) -> None:
    insert_application(store, 42, Application(name="as-code", from_repository="git@acme/as-code"))
    with pytest.raises(ForbiddenError):
        set_application_deployment_strategy(store, 42, "as-code", "kube", {"a": _value("string", "b")})
    with pytest.raises(ForbiddenError):
        delete_application_deployment_strategy(store, 42, "as-code", "kube")


def test_delete_strategy(store, app) -> None:
    set_application_deployment_strategy(store, 42, "svc-a", "kube", {"a": _value("string", "b")})
    result = delete_application_deployment_strategy(store, 42, "svc-a", "kube")
    assert result.deployment_strategies == {}
    with pytest.raises(NotFoundError):
        delete_application_deployment_strategy(store, 42, "svc-a", "kube")


def test_unknown_application_is_not_found(store) -> None:
    with pytest.raises(NotFoundError):
        set_application_deployment_strategy(store, 42, "ghost", "kube", {})


def test_corrupted_strategy_is_not_found_on_set(store, session, app) -> None:
    set_application_deployment_strategy(store, 42, "svc-a", "kube", {"namespace": _value("string", "a")})
    session.execute(
        update(ApplicationDeploymentStrategy)
        .where(ApplicationDeploymentStrategy.application_id == app.id)
        .values(config={"namespace": {"type": "string", "value": "evil"}})
    )

    with pytest.raises(NotFoundError):
        set_application_deployment_strategy(store, 42, "svc-a", "kube", {"namespace": _value("string", "b")})
    with pytest.raises(NotFoundError):
        set_deployment_strategy(store, app.id, "kube", {"namespace": _value("string", "b")})
