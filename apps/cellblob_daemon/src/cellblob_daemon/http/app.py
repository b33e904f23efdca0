from __future__ import annotations

import logging

from cellblob_core.errors import (
    BlobClosedError,
    BlobIOError,
    BlobNotFoundError,
    BlobNotWritableError,
    BlobRangeError,
    BlobSchemaError,
    CellBlobError,
)
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cellblob_daemon.config import Settings
from cellblob_daemon.http.api import build_api_router
from cellblob_daemon.http.context import AppContext
from cellblob_daemon.http.schemas import ErrorResponse

log = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[CellBlobError], int] = {
    BlobNotFoundError: 404,
    BlobSchemaError: 400,
    BlobRangeError: 416,
    BlobNotWritableError: 409,
    BlobClosedError: 409,
    BlobIOError: 500,
}


def status_for(exc: CellBlobError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(settings: Settings | None = None, auth_token: str | None = None) -> FastAPI:
    cfg = settings or Settings()
    cfg.ensure_dirs()
    token = auth_token or cfg.resolved_auth_token()

    app = FastAPI(title="CellBlob Daemon", version="0.1.0")
    app.state.ctx = AppContext(settings=cfg, auth_token=token)
    app.include_router(build_api_router())

    @app.exception_handler(CellBlobError)
    async def blob_error_handler(request: Request, exc: CellBlobError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            log.error("blob request %s failed: %s", request.url.path, exc)
        body = ErrorResponse(detail=str(exc), engine_error=exc.errorname)
        return JSONResponse(status_code=status_code, content=body.model_dump())

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app
