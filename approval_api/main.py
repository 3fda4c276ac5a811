"""Approval API application: logging, error tracking, error envelopes, routers."""
import logging

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from approval_api.core.config import settings
from approval_api.core.errors import ApprovalServiceError
from approval_api.db.session import engine
from approval_api.db.unit_of_work import translate_integrity_error
from approval_api.routers import approvals, attachments, departments, forms

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _init_error_tracking() -> None:
    """Report unhandled errors to Sentry outside local development."""
    if not settings.SENTRY_DSN or settings.ENV in ("dev", "test"):
        return
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logger.info("Sentry error tracking enabled for %s", settings.ENV)


_init_error_tracking()

_docs_enabled = settings.ENV == "dev"

app = FastAPI(
    title="Approval API",
    description="Project approval requests with attachments and department routing",
    version=settings.VERSION,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ============================================================================
# Error envelopes: {"error", "code", "field"?, ...}
# ============================================================================

@app.exception_handler(ApprovalServiceError)
async def approval_service_error_handler(request: Request, exc: ApprovalServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Unhandled integrity error on %s %s", request.method, request.url.path)
    conflict = translate_integrity_error(exc)
    return JSONResponse(status_code=conflict.status_code, content=conflict.to_dict())


for module in (approvals, attachments, departments, forms):
    app.include_router(module.router)


@app.get("/health")
def health():
    """Liveness plus a database round trip."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
