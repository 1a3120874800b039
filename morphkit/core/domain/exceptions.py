# morphkit/core/domain/exceptions.py
"""
Domain exception taxonomy.

Leaf components (pack loader, native engine binding, transport) raise these.
The worker host and the runtime convert them into `error` responses, failure
sentinels or `reason` strings, so they never reach a caller of
analyse/generate/join.
"""


class MorphError(Exception):
    """Base class for all morphkit errors."""


class TransportUnavailable(MorphError):
    """No execution context could be started; the channel degrades to a stub."""


class HandshakeFailed(MorphError):
    """The worker did not answer the init handshake with `ready`."""


class IntegrityMismatch(MorphError):
    """A fetched resource does not match its expected sha256 digest."""

    def __init__(self, url: str, expected: str, actual: str):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(f"Integrity mismatch for {url}: expected {expected}, got {actual}")


class ResourceLoadFailed(MorphError):
    """A pack resource could not be fetched or read."""


class DecompressionFailed(MorphError):
    """A resource carried a gzip marker but could not be decompressed."""


class EngineLoadFailed(MorphError):
    """The engine library or a transducer could not be loaded."""


class UnknownMessage(MorphError):
    """A protocol message of an unknown type reached the worker."""


__all__ = [
    "MorphError",
    "TransportUnavailable",
    "HandshakeFailed",
    "IntegrityMismatch",
    "ResourceLoadFailed",
    "DecompressionFailed",
    "EngineLoadFailed",
    "UnknownMessage",
]
