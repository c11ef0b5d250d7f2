from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable, Sequence

from sqlalchemy import select

from sealstore.domain.entities import Application
from sealstore.domain.models import Application as ApplicationRow
from sealstore.persistence.repos.deployment_strategies import load_deployment_strategies
from sealstore.persistence.repos.keys import load_keys
from sealstore.persistence.repos.variables import load_variables
from sealstore.persistence.signed import EntityStore


class LoadOption(str, Enum):
    """Related aggregates that can be attached to already-loaded applications.

    Each option replaces the attribute it owns, so applying one twice, or
    retrying it after a failure, leaves the same result.
    """

    DEFAULT = "default"
    WITH_VARIABLES = "with_variables"
    WITH_CLEAR_VARIABLES = "with_clear_variables"
    WITH_KEYS = "with_keys"
    WITH_CLEAR_KEYS = "with_clear_keys"
    WITH_DEPLOYMENT_STRATEGIES = "with_deployment_strategies"
    WITH_CLEAR_DEPLOYMENT_STRATEGIES = "with_clear_deployment_strategies"
    WITH_ICON = "with_icon"

    def apply(self, store: EntityStore, applications: Sequence[Application]) -> None:
        _LOADERS[self](store, applications)


def _load_variables(store: EntityStore, applications: Sequence[Application], *, decrypt: bool) -> None:
    for app in applications:
        app.variables = load_variables(store, _require_id(app), decrypt=decrypt)


def _load_keys(store: EntityStore, applications: Sequence[Application], *, decrypt: bool) -> None:
    for app in applications:
        app.keys = load_keys(store, _require_id(app), decrypt=decrypt)


def _load_deployment_strategies(
    store: EntityStore, applications: Sequence[Application], *, decrypt: bool
) -> None:
    for app in applications:
        app.deployment_strategies = load_deployment_strategies(store, _require_id(app), decrypt=decrypt)


def _load_icon(store: EntityStore, applications: Sequence[Application]) -> None:
    # Icons are heavy and left out of default loads.
    for app in applications:
        row = store.get(select(ApplicationRow).where(ApplicationRow.id == _require_id(app)), "application")
        app.icon = row.icon


def _require_id(app: Application) -> int:
    if app.id is None:
        raise ValueError(f"application {app.name} has not been persisted")
    return app.id


_LOADERS: dict[LoadOption, Callable[[EntityStore, Sequence[Application]], None]] = {
    LoadOption.DEFAULT: lambda store, apps: _load_variables(store, apps, decrypt=False),
    LoadOption.WITH_VARIABLES: lambda store, apps: _load_variables(store, apps, decrypt=False),
    LoadOption.WITH_CLEAR_VARIABLES: lambda store, apps: _load_variables(store, apps, decrypt=True),
    LoadOption.WITH_KEYS: lambda store, apps: _load_keys(store, apps, decrypt=False),
    LoadOption.WITH_CLEAR_KEYS: lambda store, apps: _load_keys(store, apps, decrypt=True),
    LoadOption.WITH_DEPLOYMENT_STRATEGIES: lambda store, apps: _load_deployment_strategies(
        store, apps, decrypt=False
    ),
    LoadOption.WITH_CLEAR_DEPLOYMENT_STRATEGIES: lambda store, apps: _load_deployment_strategies(
        store, apps, decrypt=True
    ),
    LoadOption.WITH_ICON: _load_icon,
}


def apply_load_options(
    store: EntityStore, applications: Sequence[Application], options: Iterable[LoadOption | str]
) -> None:
    # Options run in the order given; unknown names fail before anything is loaded.
    resolved = [LoadOption(option) for option in options]
    for option in resolved:
        option.apply(store, applications)
