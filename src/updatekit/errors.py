"""Error kinds raised by updatekit."""

from __future__ import annotations


class UpdateKitError(Exception):
    """Base class for all updatekit failures."""


class FileIOError(UpdateKitError, OSError):
    """Filesystem open, read or write failure."""


class NetworkError(UpdateKitError):
    """Connection or transport failure."""


class HTTPStatusError(UpdateKitError):
    """A terminal response carried an unexpected status code."""

    def __init__(self, message: str, *, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TooManyRedirectsError(UpdateKitError):
    pass


class ChecksumMismatchError(UpdateKitError):
    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"sha512 checksum mismatch, expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class CompressionError(UpdateKitError):
    """Unsupported or failing compression codec."""


class OperationCancelledError(UpdateKitError):
    """Work was aborted by a signal or by a failing sibling part."""
