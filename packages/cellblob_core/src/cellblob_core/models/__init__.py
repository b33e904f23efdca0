from cellblob_core.models.locator import INT64_MAX, INT64_MIN, BlobLocator, HandleState

__all__ = [
    "INT64_MAX",
    "INT64_MIN",
    "BlobLocator",
    "HandleState",
]
