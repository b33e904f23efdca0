from cellblob_core.services.buffer import byte_view, check_span
from cellblob_core.services.handle import (
    DEFAULT_CHUNK_SIZE,
    BlobHandle,
    blob_size,
    close_blob,
    open_blob,
    read_blob,
    write_blob,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "BlobHandle",
    "blob_size",
    "byte_view",
    "check_span",
    "close_blob",
    "open_blob",
    "read_blob",
    "write_blob",
]
