"""Error kinds raised by chunkrelay components.

This module provides:
- RelayError: Base exception for every transfer failure
- ValidationError, ConfigurationError: Bad input
- SourceError, UnsupportedSourceKind, RangeUnsupported: Source problems
- SessionError, TransferError: Destination protocol failures

A 308 reply from the destination is protocol flow, never an error.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for transfer errors."""


class ValidationError(RelayError):
    """Malformed transfer spec, URL or checkpoint."""


class ConfigurationError(RelayError):
    """Destination is not set up for resumable uploads."""


class SourceError(RelayError):
    """Source metadata could not be obtained."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnsupportedSourceKind(SourceError):
    """Source has no binary byte representation (e.g. a native document)."""


class RangeUnsupported(SourceError):
    """Source does not answer ranged GET requests."""


class SessionError(RelayError):
    """Negotiating the resumable-upload session failed.

    Attributes:
        body: Raw response body from the destination.
        status_code: HTTP status, or None for transport failures.
    """

    def __init__(self, body: str, status_code: int | None = None) -> None:
        super().__init__(body)
        self.body = body
        self.status_code = status_code


class TransferError(RelayError):
    """A chunk was answered with neither completion nor continuation.

    Attributes:
        body: Raw response body (or a description for transport failures).
        status_code: HTTP status, or None for transport failures.
        chunk_index: Index of the chunk being transferred, if any.
    """

    def __init__(
        self,
        body: str,
        status_code: int | None = None,
        chunk_index: int | None = None,
    ) -> None:
        super().__init__(body)
        self.body = body
        self.status_code = status_code
        self.chunk_index = chunk_index
