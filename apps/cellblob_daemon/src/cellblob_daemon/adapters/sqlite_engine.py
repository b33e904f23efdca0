from __future__ import annotations

import logging
import sqlite3
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from cellblob_core.errors import (
    BlobClosedError,
    BlobIOError,
    BlobNotFoundError,
    BlobNotWritableError,
    BlobRangeError,
    BlobSchemaError,
    CellBlobError,
)
from cellblob_core.models import BlobLocator

log = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("no such rowid", "cannot open value of type null")
_SCHEMA_MARKERS = (
    "no such table",
    "no such column",
    "cannot open value of type",
    "column for writing",
    "cannot open virtual table",
    "cannot open view",
    "cannot open table without rowid",
)


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def translate_error(exc: sqlite3.Error, context: str) -> CellBlobError:
    """Map a sqlite3 exception onto the blob error taxonomy.

    The engine's result code and name are passed through untouched.
    """
    codes: dict[str, Any] = {
        "errorcode": getattr(exc, "sqlite_errorcode", None),
        "errorname": getattr(exc, "sqlite_errorname", None),
    }
    message = f"{context}: {exc}"
    if isinstance(exc, sqlite3.ProgrammingError):
        return BlobClosedError(message, **codes)

    text = str(exc).lower()
    if codes["errorname"] == "SQLITE_READONLY" or "readonly database" in text:
        return BlobNotWritableError(message, **codes)
    if any(marker in text for marker in _NOT_FOUND_MARKERS):
        return BlobNotFoundError(message, **codes)
    if any(marker in text for marker in _SCHEMA_MARKERS):
        return BlobSchemaError(message, **codes)
    return BlobIOError(message, **codes)


class SQLiteBlobChannel:
    """Wraps one ``sqlite3.Blob``."""

    def __init__(self, blob: sqlite3.Blob, locator: BlobLocator) -> None:
        self._blob: sqlite3.Blob | None = blob
        self._locator = locator
        self._length = len(blob)

    @property
    def closed(self) -> bool:
        return self._blob is None

    def __len__(self) -> int:
        return self._length

    def _require(self) -> sqlite3.Blob:
        if self._blob is None:
            raise BlobClosedError(f"channel for {self._locator} is closed")
        return self._blob

    def read_at(self, offset: int, length: int) -> bytes:
        blob = self._require()
        try:
            blob.seek(offset)
            return blob.read(length)
        except sqlite3.Error as exc:
            raise translate_error(exc, f"read {self._locator}") from exc

    def write_at(self, offset: int, data: memoryview) -> None:
        blob = self._require()
        try:
            blob.seek(offset)
            blob.write(data)
        except sqlite3.Error as exc:
            raise translate_error(exc, f"write {self._locator}") from exc

    def close(self) -> None:
        blob, self._blob = self._blob, None
        if blob is not None:
            blob.close()


class SQLiteBlobConnection:
    """Blob-streaming view of a stdlib ``sqlite3`` connection.

    Closing the connection closes any channels still open on it and bumps
    ``generation`` so that handles opened earlier refuse further use.
    Closing does not commit; call :meth:`commit` first to keep changes.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._generation = 0
        self._open = True
        self._savepoint_depth = 0
        self._channels: weakref.WeakSet[SQLiteBlobChannel] = weakref.WeakSet()

    @classmethod
    def connect(cls, path: str | Path, *, readonly: bool = False) -> SQLiteBlobConnection:
        target = str(path)
        try:
            if target == ":memory:":
                conn = sqlite3.connect(":memory:", check_same_thread=False)
            else:
                mode = "ro" if readonly else "rwc"
                uri = f"{Path(target).resolve().as_uri()}?mode={mode}"
                conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
        except sqlite3.Error as exc:
            raise translate_error(exc, f"connect {target}") from exc
        return cls(conn)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def connection(self) -> sqlite3.Connection:
        return self._require()

    def _require(self) -> sqlite3.Connection:
        if not self._open:
            raise BlobClosedError("connection is closed")
        return self._conn

    def execute(self, sql: str, params: tuple | dict = ()) -> sqlite3.Cursor:
        return self._require().execute(sql, params)

    def commit(self) -> None:
        self._require().commit()

    def rollback(self) -> None:
        self._require().rollback()

    def open_channel(self, locator: BlobLocator, *, writable: bool) -> SQLiteBlobChannel:
        conn = self._require()
        try:
            blob = conn.blobopen(
                locator.table,
                locator.column,
                locator.row_id,
                readonly=not writable,
                name=locator.schema_name,
            )
        except sqlite3.Error as exc:
            raise translate_error(exc, f"open {locator}") from exc
        channel = SQLiteBlobChannel(blob, locator)
        self._channels.add(channel)
        return channel

    def allocate_placeholder(self, locator: BlobLocator, size: int) -> None:
        """Set the cell to ``size`` zero bytes, inserting the row if needed."""
        if size < 0:
            raise BlobRangeError(f"placeholder size must not be negative, got {size}")
        conn = self._require()
        table = f"{quote_identifier(locator.schema_name)}.{quote_identifier(locator.table)}"
        column = quote_identifier(locator.column)
        try:
            cur = conn.execute(
                f"UPDATE {table} SET {column} = zeroblob(?) WHERE rowid = ?",
                (size, locator.row_id),
            )
            if cur.rowcount == 0:
                conn.execute(
                    f"INSERT INTO {table} (rowid, {column}) VALUES (?, zeroblob(?))",
                    (locator.row_id, size),
                )
        except sqlite3.Error as exc:
            raise translate_error(exc, f"allocate {locator}") from exc
        log.debug("allocated %d-byte placeholder at %s", size, locator)

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Run the block inside ``SAVEPOINT``; roll it back if the block raises.

        On a connection with implicit transactions the savepoint is nested in
        an explicit ``BEGIN`` so a successful block still waits for
        :meth:`commit`. In autocommit mode releasing it commits.
        """
        conn = self._require()
        name = quote_identifier(f"cellblob_{self._savepoint_depth}")
        try:
            if conn.isolation_level is not None and not conn.in_transaction:
                conn.execute("BEGIN")
            conn.execute(f"SAVEPOINT {name}")
        except sqlite3.Error as exc:
            raise translate_error(exc, "begin savepoint") from exc

        self._savepoint_depth += 1
        try:
            yield
        except BaseException:
            if not self._open:
                raise
            log.debug("rolling back savepoint %s", name)
            try:
                conn.execute(f"ROLLBACK TO {name}")
                conn.execute(f"RELEASE {name}")
            except sqlite3.Error as exc:
                raise translate_error(exc, "roll back savepoint") from exc
            raise
        else:
            try:
                conn.execute(f"RELEASE {name}")
            except sqlite3.Error as exc:
                raise translate_error(exc, "release savepoint") from exc
        finally:
            self._savepoint_depth -= 1

    def close(self) -> None:
        if not self._open:
            return
        leftover = [channel for channel in self._channels if not channel.closed]
        if leftover:
            log.warning("closing sqlite connection with %d open blob handle(s)", len(leftover))
        for channel in leftover:
            channel.close()
        self._open = False
        self._generation += 1
        self._conn.close()

    def __enter__(self) -> SQLiteBlobConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
