from __future__ import annotations

from dataclasses import dataclass

from cellblob_core.models import BlobLocator

from cellblob_daemon.adapters import SQLiteBlobConnection
from cellblob_daemon.config import Settings


@dataclass
class AppContext:
    settings: Settings
    auth_token: str

    def connect(self) -> SQLiteBlobConnection:
        # one connection per request
        return SQLiteBlobConnection.connect(self.settings.sqlite_path)

    def locate(self, table: str, column: str, row_id: int) -> BlobLocator | None:
        if not self.settings.exposes(table, column):
            return None
        return BlobLocator(table=table, column=column, row_id=row_id)
