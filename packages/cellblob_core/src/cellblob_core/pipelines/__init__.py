from cellblob_core.pipelines.whole import read_whole, store_stream, write_whole

__all__ = [
    "read_whole",
    "store_stream",
    "write_whole",
]
