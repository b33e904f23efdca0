from contextlib import AbstractContextManager
from typing import Protocol

from cellblob_core.models import BlobLocator


class BlobChannel(Protocol):
    """Engine-side stream bound to one blob cell.

    The core checks every offset and length against ``len(channel)``
    before calling ``read_at``/``write_at``.
    """

    def __len__(self) -> int: ...

    def read_at(self, offset: int, length: int) -> bytes: ...

    def write_at(self, offset: int, data: memoryview) -> None: ...

    def close(self) -> None: ...


class BlobConnection(Protocol):
    @property
    def generation(self) -> int: ...

    @property
    def is_open(self) -> bool: ...

    def open_channel(self, locator: BlobLocator, *, writable: bool) -> BlobChannel: ...

    def allocate_placeholder(self, locator: BlobLocator, size: int) -> None: ...

    def savepoint(self) -> AbstractContextManager[None]:
        """Scope whose changes are undone if the block raises."""
        ...
