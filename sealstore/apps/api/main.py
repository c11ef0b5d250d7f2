from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from sealstore.apps.api.errors import (
    http_exception_handler,
    sealstore_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from sealstore.apps.api.response import API_VERSION
from sealstore.apps.api.routes.applications import router as applications_router
from sealstore.apps.api.routes.deployment_strategies import router as deployment_strategies_router
from sealstore.apps.api.routes.keys import router as keys_router
from sealstore.apps.api.routes.variables import router as variables_router
from sealstore.core.config import get_settings
from sealstore.core.errors import SealStoreError
from sealstore.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=f"{get_settings().app_name} API")

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SealStoreError, sealstore_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(applications_router, prefix=f"/{API_VERSION}")
    app.include_router(variables_router, prefix=f"/{API_VERSION}")
    app.include_router(keys_router, prefix=f"/{API_VERSION}")
    app.include_router(deployment_strategies_router, prefix=f"/{API_VERSION}")
    return app


app = create_app()
