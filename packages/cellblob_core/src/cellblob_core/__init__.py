from cellblob_core.errors import (
    BlobClosedError,
    BlobIOError,
    BlobNotFoundError,
    BlobNotWritableError,
    BlobRangeError,
    BlobSchemaError,
    CellBlobError,
)
from cellblob_core.models import BlobLocator, HandleState
from cellblob_core.pipelines import read_whole, store_stream, write_whole
from cellblob_core.services import (
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
    "BlobClosedError",
    "BlobHandle",
    "BlobIOError",
    "BlobLocator",
    "BlobNotFoundError",
    "BlobNotWritableError",
    "BlobRangeError",
    "BlobSchemaError",
    "CellBlobError",
    "HandleState",
    "blob_size",
    "close_blob",
    "open_blob",
    "read_blob",
    "read_whole",
    "store_stream",
    "write_blob",
    "write_whole",
]
