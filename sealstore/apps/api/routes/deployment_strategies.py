from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from sealstore.apps.api.deps import get_store
from sealstore.apps.api.response import SuccessEnvelope, success_response
from sealstore.domain.entities import IntegrationConfig
from sealstore.persistence.repos import applications as applications_repo
from sealstore.persistence.repos.load_options import LoadOption
from sealstore.persistence.signed import EntityStore
from sealstore.services.deployments import (
    delete_application_deployment_strategy,
    set_application_deployment_strategy,
)


router = APIRouter(
    prefix="/projects/{project_id}/applications/{application_name}/deployment",
    tags=["deployment"],
)


@router.get("/config", response_model=SuccessEnvelope[dict[str, IntegrationConfig]])
def get_deployment_strategies(
    project_id: int,
    application_name: str,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = applications_repo.load_by_project_and_name(
        store, project_id, application_name, LoadOption.WITH_DEPLOYMENT_STRATEGIES
    )
    return success_response(request=request, data=app.deployment_strategies or {})


@router.post("/config/{integration_name}", response_model=SuccessEnvelope[dict[str, IntegrationConfig]])
def set_deployment_strategy(
    project_id: int,
    application_name: str,
    integration_name: str,
    payload: IntegrationConfig,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = set_application_deployment_strategy(store, project_id, application_name, integration_name, payload)
    store.session.commit()
    return success_response(request=request, data=app.deployment_strategies or {})


@router.delete("/config/{integration_name}", response_model=SuccessEnvelope[dict[str, IntegrationConfig]])
def delete_deployment_strategy(
    project_id: int,
    application_name: str,
    integration_name: str,
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    app = delete_application_deployment_strategy(store, project_id, application_name, integration_name)
    store.session.commit()
    return success_response(request=request, data=app.deployment_strategies or {})
