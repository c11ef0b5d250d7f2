from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from sealstore.apps.api.deps import get_store
from sealstore.apps.api.response import SuccessEnvelope, success_response
from sealstore.domain.entities import ApplicationKey
from sealstore.persistence.repos import applications as applications_repo
from sealstore.persistence.repos import keys as keys_repo
from sealstore.persistence.signed import EntityStore


router = APIRouter(
    prefix="/projects/{project_id}/applications/{application_name}/keys",
    tags=["keys"],
)


class KeyRequest(BaseModel):
    name: str
    type: str
    public: str = ""
    private: str = ""
    key_id: str = ""

    model_config = {"extra": "forbid"}


@router.get("", response_model=SuccessEnvelope[list[ApplicationKey]])
def list_keys(
    project_id: int,
    application_name: str,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = applications_repo.load_by_project_and_name(store, project_id, application_name)
    return success_response(request=request, data=keys_repo.load_keys(store, app.id))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SuccessEnvelope[ApplicationKey])
def create_key(
    project_id: int,
    application_name: str,
    payload: KeyRequest,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = applications_repo.load_by_project_and_name(store, project_id, application_name)
    key = keys_repo.insert_key(store, app.id, ApplicationKey(application_id=app.id, **payload.model_dump()))
    store.session.commit()
    return success_response(request=request, data=key)


@router.delete("/{key_name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_key(
    project_id: int,
    application_name: str,
    key_name: str,
    store: EntityStore = Depends(get_store),
) -> None:
    app = applications_repo.load_by_project_and_name(store, project_id, application_name)
    keys_repo.delete_key(store, app.id, key_name)
    store.session.commit()
