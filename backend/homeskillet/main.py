# backend/homeskillet/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .errors import install_error_handlers
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.users import router as users_router

from .routers.properties import router as properties_router
from .routers.projects import router as projects_router
from .routers.tasks import router as tasks_router
from .routers.maintenance import router as maintenance_router

from .routers.documents import router as documents_router
from .routers.insurance import router as insurance_router
from .routers.reports import router as reports_router


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title=settings.app_name, version=settings.app_version)

    # added last runs first: request id wraps the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    install_error_handlers(app)

    # liveness at the root for load balancers, and under the API prefix
    app.include_router(health_router)
    app.include_router(health_router, prefix=settings.api_prefix)

    # Identity
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(users_router, prefix=settings.api_prefix)

    # Properties and work
    app.include_router(properties_router, prefix=settings.api_prefix)
    app.include_router(projects_router, prefix=settings.api_prefix)
    app.include_router(tasks_router, prefix=settings.api_prefix)
    app.include_router(maintenance_router, prefix=settings.api_prefix)

    # Records
    app.include_router(documents_router, prefix=settings.api_prefix)
    app.include_router(insurance_router, prefix=settings.api_prefix)
    app.include_router(reports_router, prefix=settings.api_prefix)

    return app


app = create_app()
