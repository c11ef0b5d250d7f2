from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel

from sealstore.apps.api.deps import get_store, require_actor
from sealstore.apps.api.response import SuccessEnvelope, success_response
from sealstore.domain.entities import Variable, VariableAudit
from sealstore.persistence.repos import applications as applications_repo
from sealstore.persistence.repos import variables as variables_repo
from sealstore.persistence.repos.audit import list_variable_audits
from sealstore.persistence.signed import EntityStore


router = APIRouter(
    prefix="/projects/{project_id}/applications/{application_name}/variables",
    tags=["variables"],
)


class VariableRequest(BaseModel):
    name: str
    type: str = "string"
    value: str = ""

    model_config = {"extra": "forbid"}


def _application_id(store: EntityStore, project_id: int, application_name: str) -> int:
    return applications_repo.load_by_project_and_name(store, project_id, application_name).id


@router.get("", response_model=SuccessEnvelope[list[Variable]])
def list_variables(
    project_id: int,
    application_name: str,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    application_id = _application_id(store, project_id, application_name)
    return success_response(request=request, data=variables_repo.load_variables(store, application_id))


@router.get("/audit", response_model=SuccessEnvelope[list[VariableAudit]])
def list_application_variable_audits(
    project_id: int,
    application_name: str,
    request: Request,
    versioned_from: datetime | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    store: EntityStore = Depends(get_store),
) -> dict:
    application_id = _application_id(store, project_id, application_name)
    audits = list_variable_audits(
        store.session,
        application_id=application_id,
        versioned_from=versioned_from,
        offset=offset,
        limit=limit,
    )
    return success_response(request=request, data=audits)


@router.get("/{variable_name}", response_model=SuccessEnvelope[Variable])
def get_variable(
    project_id: int,
    application_name: str,
    variable_name: str,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    application_id = _application_id(store, project_id, application_name)
    variable = variables_repo.load_variable(store, application_id, variable_name)
    return success_response(request=request, data=variable)


@router.get("/{variable_name}/audit", response_model=SuccessEnvelope[list[VariableAudit]])
def list_variable_audit(
    project_id: int,
    application_name: str,
    variable_name: str,
    request: Request,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    store: EntityStore = Depends(get_store),
) -> dict:
    application_id = _application_id(store, project_id, application_name)
    variable = variables_repo.load_variable(store, application_id, variable_name)
    audits = list_variable_audits(
        store.session,
        application_id=application_id,
        variable_id=variable.id,
        offset=offset,
        limit=limit,
    )
    return success_response(request=request, data=audits)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[Variable])
def create_variable(
    project_id: int,
    application_name: str,
    payload: VariableRequest,
    request: Request,
    actor: str = Depends(require_actor),
    store: EntityStore = Depends(get_store),
) -> dict:
    application_id = _application_id(store, project_id, application_name)
    variable = variables_repo.insert_variable(
        store, application_id, Variable(**payload.model_dump()), actor=actor
    )
    store.session.commit()
    return success_response(request=request, data=variable)


@router.put("/{variable_name}", response_model=SuccessEnvelope[Variable])
def update_variable(
    project_id: int,
    application_name: str,
    variable_name: str,
    payload: VariableRequest,
    request: Request,
    actor: str = Depends(require_actor),
    store: EntityStore = Depends(get_store),
) -> dict:
    application_id = _application_id(store, project_id, application_name)
    # The path names the row; the payload may rename it.
    existing = variables_repo.load_variable(store, application_id, variable_name)
    candidate = Variable(id=existing.id, **payload.model_dump())
    variable = variables_repo.update_variable(store, application_id, candidate, actor=actor)
    store.session.commit()
    return success_response(request=request, data=variable)


@router.delete("/{variable_name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_variable(
    project_id: int,
    application_name: str,
    variable_name: str,
    actor: str = Depends(require_actor),
    store: EntityStore = Depends(get_store),
) -> None:
    application_id = _application_id(store, project_id, application_name)
    variables_repo.delete_variable(store, application_id, variable_name, actor=actor)
    store.session.commit()
