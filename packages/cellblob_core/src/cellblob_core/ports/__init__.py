from cellblob_core.ports.channel import BlobChannel, BlobConnection

__all__ = [
    "BlobChannel",
    "BlobConnection",
]
