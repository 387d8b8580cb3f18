# arriendo/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.errors import ArriendoError
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.meta import router as meta_router
from .routers.auth import router as auth_router
from .routers.plans import router as plans_router
from .routers.kyc import router as kyc_router
from .routers.contract_requests import router as contract_requests_router
from .routers.intentions import router as intentions_router
from .routers.contracts import router as contracts_router
from .routers.templates import router as templates_router
from .routers.notifications import router as notifications_router

API_PREFIX = "/api"

log = logging.getLogger("arriendo.api")


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def arriendo_error_handler(request: Request, exc: ArriendoError) -> JSONResponse:
    log.info(
        "request rejected",
        extra={"event": "domain_error", "path": request.url.path, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.as_dict())


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Arriendo Contracts API", version=settings.app_version)

    # last added runs first: request id must be set before the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ArriendoError, arriendo_error_handler)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(meta_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)

    # Entitlements + KYC
    app.include_router(plans_router, prefix=API_PREFIX)
    app.include_router(kyc_router, prefix=API_PREFIX)

    # Contract lifecycle
    app.include_router(contract_requests_router, prefix=API_PREFIX)
    app.include_router(intentions_router, prefix=API_PREFIX)
    app.include_router(contracts_router, prefix=API_PREFIX)
    app.include_router(templates_router, prefix=API_PREFIX)

    # Notifications
    app.include_router(notifications_router, prefix=API_PREFIX)

    return app


app = create_app()
