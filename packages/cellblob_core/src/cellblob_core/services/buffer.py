from __future__ import annotations

from typing import TYPE_CHECKING

from cellblob_core.errors import BlobRangeError

if TYPE_CHECKING:
    from collections.abc import Buffer


def byte_view(buffer: Buffer, *, writable: bool = False) -> memoryview:
    """Return a flat unsigned-byte view over a caller-owned buffer.

    The view shares memory with ``buffer``; nothing is copied or resized.
    """
    view = memoryview(buffer)
    if writable and view.readonly:
        raise TypeError("destination buffer is read-only")
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def check_span(capacity: int, offset: int, length: int, *, what: str) -> None:
    if offset < 0 or length < 0:
        raise BlobRangeError(f"negative {what} offset or length (offset={offset}, length={length})")
    if offset + length > capacity:
        raise BlobRangeError(f"{what} range [{offset}, {offset + length}) exceeds {what} size {capacity}")
