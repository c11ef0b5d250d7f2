from __future__ import annotations

import pytest
from sqlalchemy import func, select, update

from sealstore.core.config import PASSWORD_PLACEHOLDER
from sealstore.core.errors import NotFoundError, ValidationFailedError
from sealstore.domain.entities import (
    Application,
    ApplicationKey,
    IntegrationConfigValue,
    RepositoryStrategy,
    Variable,
)
from sealstore.domain.models import Application as ApplicationRow
from sealstore.domain.models import ApplicationVariableAudit
from sealstore.persistence.repos import applications as applications_repo
from sealstore.persistence.repos.deployment_strategies import set_deployment_strategy
from sealstore.persistence.repos.keys import insert_key
from sealstore.persistence.repos.load_options import LoadOption, apply_load_options
from sealstore.persistence.repos.variables import insert_variable


def _svc_a(**strategy) -> Application:
    return Application(
        name="svc-a",
        repository_strategy=RepositoryStrategy(**{"connection_type": "https", "password": "s3cr3t", **strategy}),
    )


def test_insert_masks_password_and_decrypted_get_returns_it(store) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a())
    assert inserted.repository_strategy.password == PASSWORD_PLACEHOLDER

    loaded = applications_repo.load_by_project_and_name(store, 42, "svc-a", decrypt=True)
    assert loaded.repository_strategy.password == "s3cr3t"


def test_insert_can_return_clear_values(store) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a(), keep_clear=True)
    assert inserted.repository_strategy.password == "s3cr3t"


def test_insert_does_not_mutate_the_caller_entity(store) -> None:
    app = _svc_a()
    applications_repo.insert_application(store, 42, app)
    assert app.id is None
    assert app.repository_strategy.password == "s3cr3t"


def test_update_with_placeholder_keeps_stored_password(store) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a())
    inserted.description = "renamed description"
    assert inserted.repository_strategy.password == PASSWORD_PLACEHOLDER

    updated = applications_repo.update_application(store, inserted)
    assert updated.description == "renamed description"
    assert updated.repository_strategy.password == PASSWORD_PLACEHOLDER

    loaded = applications_repo.load_by_id(store, inserted.id, decrypt=True)
    assert loaded.repository_strategy.password == "s3cr3t"


def test_update_with_new_password_replaces_it(store) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a())
    inserted.repository_strategy.password = "n3w"
    applications_repo.update_application(store, inserted)
    loaded = applications_repo.load_by_id(store, inserted.id, decrypt=True)
    assert loaded.repository_strategy.password == "n3w"


def test_update_with_empty_password_clears_it(store) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a())
    inserted.repository_strategy.password = ""
    updated = applications_repo.update_application(store, inserted)
    assert updated.repository_strategy.password == ""
    loaded = applications_repo.load_by_id(store, inserted.id, decrypt=True)
    assert loaded.repository_strategy.password == ""


def test_ssh_connection_forces_empty_password_before_placeholder(store) -> None:
    # A placeholder submitted with an ssh connection must not resurrect the stored password.
    inserted = applications_repo.insert_application(store, 42, _svc_a())
    inserted.repository_strategy.connection_type = "ssh"
    inserted.repository_strategy.password = PASSWORD_PLACEHOLDER
    inserted.repository_strategy.ssh_key = "app-deploy"

    updated = applications_repo.update_application(store, inserted)
    assert updated.repository_strategy.password == ""
    loaded = applications_repo.load_by_id(store, inserted.id, decrypt=True)
    assert loaded.repository_strategy.password == ""
    assert loaded.repository_strategy.ssh_key == "app-deploy"


def test_ssh_insert_drops_password(store, session) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a(connection_type="ssh"))
    assert inserted.repository_strategy.password == ""
    assert session.get(ApplicationRow, inserted.id).vcs_cipher_password is None


def test_insert_rejects_placeholder_password(store) -> None:
    with pytest.raises(ValidationFailedError):
        applications_repo.insert_application(store, 42, _svc_a(password=PASSWORD_PLACEHOLDER))


def test_update_of_unknown_application_is_not_found(store) -> None:
    ghost = Application(id=12345, project_id=42, name="ghost")
    with pytest.raises(NotFoundError):
        applications_repo.update_application(store, ghost)


def test_update_keeps_icon_unless_one_is_given(store) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a().model_copy(update={"icon": "data:1"}))
    assert inserted.icon is None

    applications_repo.update_application(store, inserted)
    assert applications_repo.load_icon(store, inserted.id) == "data:1"

    inserted.icon = "data:2"
    applications_repo.update_application(store, inserted)
    loaded = applications_repo.load_by_id(store, inserted.id, LoadOption.WITH_ICON)
    assert loaded.icon == "data:2"


def test_exists_and_names(store) -> None:
    applications_repo.insert_application(store, 42, Application(name="beta", description="b", icon="i"))
    applications_repo.insert_application(store, 42, Application(name="alpha"))
    applications_repo.insert_application(store, 7, Application(name="gamma"))

    assert applications_repo.exists(store, 42, "alpha")
    assert not applications_repo.exists(store, 42, "gamma")
    names = applications_repo.load_all_names(store, 42)
    assert [(item.name, item.description, item.icon) for item in names] == [("alpha", "", ""), ("beta", "b", "i")]


def test_corrupted_application_does_not_exist(store, session) -> None:
    inserted = applications_repo.insert_application(store, 42, _svc_a())
    session.execute(update(ApplicationRow).where(ApplicationRow.id == inserted.id).values(description="evil"))

    with pytest.raises(NotFoundError):
        applications_repo.load_by_project_and_name(store, 42, "svc-a")
    assert not applications_repo.exists(store, 42, "svc-a")


def test_variable_and_key_inserts_can_return_clear_values(store) -> None:
    app = applications_repo.insert_application(store, 42, _svc_a())
    variable = insert_variable(
        store, app.id, Variable(name="token", type="password", value="t0k"), actor=None, keep_clear=True
    )
    key = insert_key(
        store, app.id, ApplicationKey(name="app-deploy", type="ssh", public="pub", private="priv"), keep_clear=True
    )
    assert variable.value == "t0k"
    assert key.private == "priv"

    masked = insert_variable(store, app.id, Variable(name="other", type="password", value="x"), actor=None)
    assert masked.value == PASSWORD_PLACEHOLDER


def test_load_all_by_repository(store) -> None:
    applications_repo.insert_application(store, 42, Application(name="a", from_repository="git@acme/a"))
    applications_repo.insert_application(store, 42, Application(name="b"))
    apps = applications_repo.load_all_by_repository(store, 42, "git@acme/a")
    assert [app.name for app in apps] == ["a"]


def test_load_options_attach_related_aggregates(store) -> None:
    app = applications_repo.insert_application(store, 42, _svc_a())
    insert_variable(store, app.id, Variable(name="token", type="password", value="t0k"), actor=None)
    insert_variable(store, app.id, Variable(name="region", value="eu"), actor=None)
    insert_key(store, app.id, ApplicationKey(name="app-deploy", type="ssh", public="pub", private="priv"))
    set_deployment_strategy(
        store, app.id, "kube", {"token": IntegrationConfigValue(type="password", value="kt")}
    )

    masked = applications_repo.load_by_id(
        store,
        app.id,
        LoadOption.WITH_VARIABLES,
        LoadOption.WITH_KEYS,
        LoadOption.WITH_DEPLOYMENT_STRATEGIES,
    )
    assert {v.name: v.value for v in masked.variables} == {"region": "eu", "token": PASSWORD_PLACEHOLDER}
    assert masked.keys[0].private == PASSWORD_PLACEHOLDER
    assert masked.deployment_strategies["kube"]["token"].value == PASSWORD_PLACEHOLDER

    clear = applications_repo.load_by_id(
        store,
        app.id,
        LoadOption.WITH_CLEAR_VARIABLES,
        LoadOption.WITH_CLEAR_KEYS,
        LoadOption.WITH_CLEAR_DEPLOYMENT_STRATEGIES,
    )
    assert {v.name: v.value for v in clear.variables} == {"region": "eu", "token": "t0k"}
    assert clear.keys[0].private == "priv"
    assert clear.deployment_strategies["kube"]["token"].value == "kt"


def test_load_options_are_idempotent(store) -> None:
    app = applications_repo.insert_application(store, 42, _svc_a())
    insert_variable(store, app.id, Variable(name="region", value="eu"), actor=None)
    loaded = applications_repo.load_by_id(store, app.id, LoadOption.WITH_VARIABLES)
    first = [v.model_dump() for v in loaded.variables]

    apply_load_options(store, [loaded], [LoadOption.WITH_VARIABLES, "with_variables"])
    assert [v.model_dump() for v in loaded.variables] == first


def test_unknown_load_option_is_rejected(store) -> None:
    app = applications_repo.insert_application(store, 42, _svc_a())
    with pytest.raises(ValueError):
        applications_repo.load_by_id(store, app.id, "with_everything")


def test_delete_removes_aggregates_but_keeps_audits(store, session) -> None:
    app = applications_repo.insert_application(store, 42, _svc_a())
    insert_variable(store, app.id, Variable(name="region", value="eu"), actor="alice")
    insert_key(store, app.id, ApplicationKey(name="app-deploy", type="ssh"))

    applications_repo.delete_application(store, app.id)

    assert not applications_repo.exists(store, 42, "svc-a")
    audits = session.scalar(
        select(func.count()).select_from(ApplicationVariableAudit).where(ApplicationVariableAudit.application_id == app.id)
    )
    assert audits == 1
    with pytest.raises(NotFoundError):
        applications_repo.delete_application(store, app.id)


def test_corrupted_application_is_dropped_from_names(store, session) -> None:
    applications_repo.insert_application(store, 42, Application(name="alpha"))
    bad = applications_repo.insert_application(store, 42, Application(name="beta"))
    session.execute(update(ApplicationRow).where(ApplicationRow.id == bad.id).values(name="beta2"))
    assert [item.name for item in applications_repo.load_all_names(store, 42)] == ["alpha"]
