from __future__ import annotations

from pydantic import BaseModel


class BlobInfoResponse(BaseModel):
    table: str
    column: str
    row_id: int
    size: int


class CapabilitiesResponse(BaseModel):
    blob_columns: list[str]
    chunk_size: int
    max_upload_bytes: int


class ErrorResponse(BaseModel):
    detail: str
    engine_error: str | None = None
