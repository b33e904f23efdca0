from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from cellblob_core.errors import BlobNotFoundError, BlobNotWritableError, BlobRangeError
from cellblob_core.models import BlobLocator
from cellblob_core.ports import BlobConnection
from cellblob_core.services import DEFAULT_CHUNK_SIZE, byte_view, check_span, open_blob

if TYPE_CHECKING:
    from collections.abc import Buffer

log = logging.getLogger(__name__)


def read_whole(
    connection: BlobConnection,
    locator: BlobLocator,
    buffer: Buffer,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Read the cell at ``locator`` into the front of ``buffer``.

    Returns the number of bytes copied: the blob size, or the buffer
    capacity when the blob is larger (the tail is dropped). A missing row
    or NULL cell reads as 0 bytes.
    """
    view = byte_view(buffer, writable=True)
    try:
        handle = open_blob(connection, locator)
    except BlobNotFoundError:
        log.debug("no blob at %s, read 0 bytes", locator)
        return 0
    with handle:
        length = min(len(view), handle.size)
        return handle.read_into(view, length, chunk_size=chunk_size)


def write_whole(
    connection: BlobConnection,
    locator: BlobLocator,
    buffer: Buffer,
    length: int | None = None,
) -> bool:
    """Overwrite the leading ``length`` bytes of a pre-sized cell.

    The cell must already hold at least ``length`` bytes (see
    ``BlobConnection.allocate_placeholder``). Returns False when the cell is
    missing, NULL, too small or cannot be opened for writing.
    """
    view = byte_view(buffer)
    if length is None:
        length = len(view)
    check_span(len(view), 0, length, what="buffer")
    try:
        handle = open_blob(connection, locator, writable=True)
    except (BlobNotFoundError, BlobNotWritableError) as exc:
        log.debug("cannot open %s for writing: %s", locator, exc)
        return False
    with handle:
        if handle.size < length:
            log.debug("blob at %s holds %d bytes, %d requested", locator, handle.size, length)
            return False
        handle.write_from(view, length)
    return True


def store_stream(
    connection: BlobConnection,
    locator: BlobLocator,
    chunks: Iterable[Buffer],
    size: int,
) -> int:
    """Allocate a ``size``-byte placeholder and fill it from ``chunks``.

    The chunks must add up to exactly ``size`` bytes. Everything runs inside
    ``connection.savepoint()``, so on failure the cell keeps its old value.
    """
    if size < 0:
        raise BlobRangeError(f"blob size must not be negative, got {size}")
    written = 0
    with connection.savepoint():
        connection.allocate_placeholder(locator, size)
        with open_blob(connection, locator, writable=True) as handle:
            for chunk in chunks:
                view = byte_view(chunk)
                if written + len(view) > size:
                    raise BlobRangeError(f"stream for {locator} exceeds declared size {size}")
                handle.write_from(view, len(view), blob_offset=written)
                written += len(view)
        if written != size:
            raise BlobRangeError(f"stream for {locator} ended after {written} of {size} bytes")
    log.debug("stored %d bytes at %s", written, locator)
    return written
