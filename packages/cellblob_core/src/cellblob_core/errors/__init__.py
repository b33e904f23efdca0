from __future__ import annotations


class CellBlobError(Exception):
    """Base class for blob streaming errors.

    ``errorcode`` and ``errorname`` carry the storage engine's own result
    code when the error originated there.
    """

    def __init__(self, message: str, *, errorcode: int | None = None, errorname: str | None = None) -> None:
        super().__init__(message)
        self.errorcode = errorcode
        self.errorname = errorname


class BlobNotFoundError(CellBlobError):
    """The row does not exist or the cell holds NULL."""


class BlobRangeError(CellBlobError):
    """An offset/length falls outside the buffer or the blob."""


class BlobSchemaError(CellBlobError):
    """The table or column does not exist or cannot be opened as a blob."""


class BlobIOError(CellBlobError):
    pass


class BlobNotWritableError(CellBlobError):
    pass


class BlobClosedError(CellBlobError):
    """The handle, or the connection it came from, has been closed."""
