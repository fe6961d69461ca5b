"""Error taxonomy.

Every error here is recovered inside the package; none of them crosses the
``DatasetService`` query interface.
"""


class GuideKBError(Exception):
    """Base class for package errors."""


class RemotePageError(GuideKBError):
    """A single page of the remote dataset could not be retrieved."""

    def __init__(self, offset: int, reason: str):
        super().__init__(f"page at offset {offset} failed: {reason}")
        self.offset = offset
        self.reason = reason


class OverrideLoadError(GuideKBError):
    """The verified override resource is missing or malformed."""


class CacheCorruption(GuideKBError):
    """A stored snapshot failed to parse or failed shape validation."""


class StorageError(GuideKBError):
    """The key-value store rejected an operation."""


class StorageQuotaExceeded(StorageError):
    """A write would exceed the store's size quota."""

    def __init__(self, key: str, size: int, quota: int):
        super().__init__(f"writing {size} bytes under {key!r} exceeds quota of {quota} bytes")
        self.key = key
        self.size = size
        self.quota = quota
