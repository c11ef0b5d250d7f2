from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field

from sealstore.apps.api.deps import get_store
from sealstore.apps.api.response import SuccessEnvelope, success_response
from sealstore.domain.entities import (
    Application,
    ApplicationKey,
    IDName,
    IntegrationConfig,
    RepositoryStrategy,
    Variable,
)
from sealstore.persistence.repos import applications as applications_repo
from sealstore.persistence.repos.load_options import LoadOption
from sealstore.persistence.signed import EntityStore


router = APIRouter(prefix="/projects/{project_id}/applications", tags=["applications"])


class ApplicationRequest(BaseModel):
    name: str
    description: str = ""
    icon: str | None = None
    repository_fullname: str = ""
    vcs_server: str = ""
    repository_strategy: RepositoryStrategy = Field(default_factory=RepositoryStrategy)
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    def to_entity(self, project_id: int, application_id: int | None = None) -> Application:
        return Application(id=application_id, project_id=project_id, **self.model_dump())


class ApplicationResponse(BaseModel):
    id: int
    project_id: int
    name: str
    description: str
    icon: str | None
    repository_fullname: str
    vcs_server: str
    repository_strategy: RepositoryStrategy
    from_repository: str
    metadata: dict[str, str]
    last_modified: datetime | None
    variables: list[Variable] | None = None
    keys: list[ApplicationKey] | None = None
    deployment_strategies: dict[str, IntegrationConfig] | None = None


def _to_response(app: Application) -> ApplicationResponse:
    return ApplicationResponse.model_validate(app.model_dump())


def _masked_options(
    with_variables: bool, with_keys: bool, with_deployment_strategies: bool, with_icon: bool
) -> list[LoadOption]:
    # Clear-text load options are never reachable over HTTP.
    options: list[LoadOption] = []
    if with_variables:
        options.append(LoadOption.WITH_VARIABLES)
    if with_keys:
        options.append(LoadOption.WITH_KEYS)
    if with_deployment_strategies:
        options.append(LoadOption.WITH_DEPLOYMENT_STRATEGIES)
    if with_icon:
        options.append(LoadOption.WITH_ICON)
    return options


@router.get("", response_model=SuccessEnvelope[list[ApplicationResponse]])
def list_applications(
    project_id: int,
    request: Request,
    repository: str | None = Query(default=None),
    store: EntityStore = Depends(get_store),
) -> dict:
    if repository:
        apps = applications_repo.load_all_by_repository(store, project_id, repository)
    else:
        apps = applications_repo.load_all(store, project_id)
    return success_response(request=request, data=[_to_response(app) for app in apps])


@router.get("/names", response_model=SuccessEnvelope[list[IDName]])
def list_application_names(
    project_id: int,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    return success_response(request=request, data=applications_repo.load_all_names(store, project_id))


@router.get("/{application_name}", response_model=SuccessEnvelope[ApplicationResponse])
def get_application(
    project_id: int,
    application_name: str,
    request: Request,
    with_variables: bool = Query(default=False),
    with_keys: bool = Query(default=False),
    with_deployment_strategies: bool = Query(default=False),
    with_icon: bool = Query(default=False),
    store: EntityStore = Depends(get_store),
) -> dict:
    options = _masked_options(with_variables, with_keys, with_deployment_strategies, with_icon)
    app = applications_repo.load_by_project_and_name(store, project_id, application_name, *options)
    return success_response(request=request, data=_to_response(app))


@router.get("/{application_name}/icon", response_model=SuccessEnvelope[str])
def get_application_icon(
    project_id: int,
    application_name: str,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = applications_repo.load_by_project_and_name(store, project_id, application_name)
    return success_response(request=request, data=applications_repo.load_icon(store, app.id))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[ApplicationResponse])
def create_application(
    project_id: int,
    payload: ApplicationRequest,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = applications_repo.insert_application(store, project_id, payload.to_entity(project_id))
    store.session.commit()
    return success_response(request=request, data=_to_response(app))


@router.put("/{application_name}", response_model=SuccessEnvelope[ApplicationResponse])
def update_application(
    project_id: int,
    application_name: str,
    payload: ApplicationRequest,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    existing = applications_repo.load_by_project_and_name(store, project_id, application_name)
    candidate = payload.to_entity(project_id, existing.id)
    candidate.from_repository = existing.from_repository
    app = applications_repo.update_application(store, candidate)
    store.session.commit()
    return success_response(request=request, data=_to_response(app))


@router.delete("/{application_name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(
    project_id: int,
    application_name: str,
    store: EntityStore = Depends(get_store),
) -> None:
    existing = applications_repo.load_by_project_and_name(store, project_id, application_name)
    applications_repo.delete_application(store, existing.id)
    store.session.commit()
