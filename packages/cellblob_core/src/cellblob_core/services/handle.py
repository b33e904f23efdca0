from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator
from typing import TYPE_CHECKING

from cellblob_core.errors import BlobClosedError, BlobIOError, BlobNotWritableError
from cellblob_core.models import BlobLocator, HandleState
from cellblob_core.ports import BlobChannel, BlobConnection
from cellblob_core.services.buffer import byte_view, check_span

if TYPE_CHECKING:
    from collections.abc import Buffer

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class BlobHandle:
    """Open streaming channel onto one blob cell.

    Handles are created by :func:`open_blob`. The blob size is captured at
    open time and stays fixed until the handle is closed; content may be
    overwritten in place but never grown or shrunk. The handle keeps only
    a weak reference to its connection and refuses to operate once that
    connection has been closed or replaced.

    Use the handle as a context manager so it is closed on every exit path::

        with open_blob(conn, locator) as handle:
            handle.read_into(buf, handle.size)
    """

    def __init__(
        self,
        connection: BlobConnection,
        channel: BlobChannel,
        locator: BlobLocator,
        *,
        writable: bool,
    ) -> None:
        self._connection = weakref.ref(connection)
        self._generation = connection.generation
        self._channel: BlobChannel | None = channel
        self._locator = locator
        self._writable = writable
        self._size = len(channel)
        self._state = HandleState.OPEN

    @property
    def locator(self) -> BlobLocator:
        return self._locator

    @property
    def writable(self) -> bool:
        return self._writable

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is HandleState.CLOSED

    @property
    def size(self) -> int:
        self._live_channel()
        return self._size

    def _live_channel(self) -> BlobChannel:
        if self._state is HandleState.CLOSED or self._channel is None:
            raise BlobClosedError(f"blob handle for {self._locator} is closed")
        connection = self._connection()
        if connection is None or not connection.is_open or connection.generation != self._generation:
            self._release()
            raise BlobClosedError(f"connection owning {self._locator} is closed")
        return self._channel

    def read_into(
        self,
        buffer: Buffer,
        length: int,
        *,
        buffer_offset: int = 0,
        blob_offset: int = 0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """Copy ``length`` blob bytes starting at ``blob_offset`` into ``buffer``.

        Bytes land in ``buffer[buffer_offset:buffer_offset + length]``; the
        rest of the buffer is left untouched. The engine is asked for at most
        ``chunk_size`` bytes per call. Returns the number of bytes copied.
        """
        channel = self._live_channel()
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        view = byte_view(buffer, writable=True)
        check_span(len(view), buffer_offset, length, what="buffer")
        check_span(self._size, blob_offset, length, what="blob")

        done = 0
        while done < length:
            step = min(chunk_size, length - done)
            data = channel.read_at(blob_offset + done, step)
            if len(data) != step:
                raise BlobIOError(f"short read from {self._locator}: wanted {step} bytes, got {len(data)}")
            start = buffer_offset + done
            view[start : start + step] = data
            done += step
        return done

    def write_from(
        self,
        buffer: Buffer,
        length: int,
        *,
        buffer_offset: int = 0,
        blob_offset: int = 0,
    ) -> None:
        """Copy ``buffer[buffer_offset:buffer_offset + length]`` into the blob.

        The range must fit inside the blob's fixed size. The bytes go to the
        engine in one call, so a failed write leaves no partial update.
        """
        channel = self._live_channel()
        if not self._writable:
            raise BlobNotWritableError(f"blob handle for {self._locator} was opened read-only")
        view = byte_view(buffer)
        check_span(len(view), buffer_offset, length, what="buffer")
        check_span(self._size, blob_offset, length, what="blob")
        if length:
            channel.write_at(blob_offset, view[buffer_offset : buffer_offset + length])

    def iter_chunks(
        self,
        *,
        start: int = 0,
        end: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> Iterator[bytes]:
        self._live_channel()
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        stop = self._size if end is None else end
        check_span(self._size, start, stop - start, what="blob")
        return self._chunks(start, stop, chunk_size)

    def _chunks(self, start: int, stop: int, chunk_size: int) -> Iterator[bytes]:
        pos = start
        while pos < stop:
            step = min(chunk_size, stop - pos)
            yield self._live_channel().read_at(pos, step)
            pos += step

    def close(self) -> None:
        if self._state is HandleState.CLOSED:
            return
        self._release()
        log.debug("closed blob handle %s", self._locator)

    def _release(self) -> None:
        channel, self._channel = self._channel, None
        self._state = HandleState.CLOSED
        if channel is not None:
            channel.close()

    def __enter__(self) -> BlobHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "rw" if self._writable else "r"
        return f"<BlobHandle {self._locator} size={self._size} mode={mode} state={self._state.value}>"


def open_blob(connection: BlobConnection, locator: BlobLocator, *, writable: bool = False) -> BlobHandle:
    """Bind a new handle to the cell at ``locator``.

    Raises BlobNotFoundError for a missing row or NULL cell, BlobSchemaError
    for an unknown or non-blob column and BlobIOError for storage failures.
    """
    if not connection.is_open:
        raise BlobClosedError("connection is closed")
    channel = connection.open_channel(locator, writable=writable)
    try:
        handle = BlobHandle(connection, channel, locator, writable=writable)
    except BaseException:
        channel.close()
        raise
    log.debug("opened %s handle on %s (%d bytes)", "writable" if writable else "read-only", locator, handle.size)
    return handle


def blob_size(handle: BlobHandle) -> int:
    return handle.size


def read_blob(handle: BlobHandle, buffer: Buffer, offset: int, length: int, *, blob_offset: int = 0) -> int:
    return handle.read_into(buffer, length, buffer_offset=offset, blob_offset=blob_offset)


def write_blob(handle: BlobHandle, buffer: Buffer, offset: int, length: int, *, blob_offset: int = 0) -> None:
    handle.write_from(buffer, length, buffer_offset=offset, blob_offset=blob_offset)


def close_blob(handle: BlobHandle) -> None:
    handle.close()
