from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator
from typing import BinaryIO

from cellblob_core.models import INT64_MAX, INT64_MIN, BlobLocator
from cellblob_core.pipelines import store_stream
from cellblob_core.services import BlobHandle, open_blob
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Path, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from cellblob_daemon.adapters import SQLiteBlobConnection
from cellblob_daemon.http.auth import require_auth
from cellblob_daemon.http.context import AppContext
from cellblob_daemon.http.schemas import BlobInfoResponse, CapabilitiesResponse

log = logging.getLogger(__name__)


def _locate(ctx: AppContext, table: str, column: str, row_id: int) -> BlobLocator:
    locator = ctx.locate(table, column, row_id)
    if locator is None:
        raise HTTPException(status_code=404, detail="Blob column not found")
    return locator


def _release(handle: BlobHandle, conn: SQLiteBlobConnection) -> None:
    handle.close()
    conn.close()


def _store_upload(ctx: AppContext, locator: BlobLocator, source: BinaryIO, size: int) -> None:
    chunk_size = ctx.settings.chunk_size
    with ctx.connect() as conn:
        store_stream(conn, locator, iter(lambda: source.read(chunk_size), b""), size)
        conn.commit()


def build_api_router() -> APIRouter:
    router = APIRouter(prefix="/api/v1", dependencies=[Depends(require_auth)])

    @router.get("/capabilities", response_model=CapabilitiesResponse)
    def capabilities(request: Request) -> CapabilitiesResponse:
        settings = request.app.state.ctx.settings
        return CapabilitiesResponse(
            blob_columns=sorted(settings.blob_columns),
            chunk_size=settings.chunk_size,
            max_upload_bytes=settings.max_upload_bytes,
        )

    @router.get("/blobs/{table}/{column}/{row_id}/info", response_model=BlobInfoResponse)
    def blob_info(
        table: str,
        column: str,
        request: Request,
        row_id: int = Path(ge=INT64_MIN, le=INT64_MAX),
    ) -> BlobInfoResponse:
        ctx = request.app.state.ctx
        locator = _locate(ctx, table, column, row_id)
        with ctx.connect() as conn, open_blob(conn, locator) as handle:
            return BlobInfoResponse(table=table, column=column, row_id=row_id, size=handle.size)

    @router.get("/blobs/{table}/{column}/{row_id}")
    def download_blob(
        table: str,
        column: str,
        request: Request,
        row_id: int = Path(ge=INT64_MIN, le=INT64_MAX),
        offset: int = Query(default=0, ge=0),
        length: int | None = Query(default=None, ge=0),
    ) -> StreamingResponse:
        ctx = request.app.state.ctx
        locator = _locate(ctx, table, column, row_id)

        conn = ctx.connect()
        try:
            handle = open_blob(conn, locator)
        except Exception:
            conn.close()
            raise
        try:
            end = handle.size if length is None else offset + length
            chunks = handle.iter_chunks(start=offset, end=end, chunk_size=ctx.settings.chunk_size)
        except Exception:
            _release(handle, conn)
            raise

        def _body() -> Iterator[bytes]:
            try:
                yield from chunks
            finally:
                _release(handle, conn)

        cleanup = BackgroundTasks()
        cleanup.add_task(_release, handle, conn)
        return StreamingResponse(
            _body(),
            media_type="application/octet-stream",
            headers={"Content-Length": str(end - offset)},
            background=cleanup,
        )

    @router.put("/blobs/{table}/{column}/{row_id}", response_model=BlobInfoResponse)
    async def upload_blob(
        table: str,
        column: str,
        request: Request,
        row_id: int = Path(ge=INT64_MIN, le=INT64_MAX),
    ) -> BlobInfoResponse:
        ctx = request.app.state.ctx
        locator = _locate(ctx, table, column, row_id)

        declared = request.headers.get("content-length")
        if declared is None:
            raise HTTPException(status_code=411, detail="Content-Length required")
        try:
            size = int(declared)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid Content-Length") from exc
        if size < 0:
            raise HTTPException(status_code=400, detail="Invalid Content-Length")
        if size > ctx.settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail="Upload too large")

        spool = tempfile.SpooledTemporaryFile(max_size=ctx.settings.chunk_size * 4)
        try:
            async for chunk in request.stream():
                spool.write(chunk)
            spool.seek(0)
            await run_in_threadpool(_store_upload, ctx, locator, spool, size)
        finally:
            spool.close()

        log.info("stored %d bytes at %s", size, locator)
        return BlobInfoResponse(table=table, column=column, row_id=row_id, size=size)

    return router
