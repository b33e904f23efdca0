from cellblob_daemon.adapters.sqlite_engine import (
    SQLiteBlobChannel,
    SQLiteBlobConnection,
    quote_identifier,
    translate_error,
)

__all__ = [
    "SQLiteBlobChannel",
    "SQLiteBlobConnection",
    "quote_identifier",
    "translate_error",
]
