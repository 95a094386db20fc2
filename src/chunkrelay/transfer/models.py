"""Data model for transfers.

This module provides:
- ManagedFile, RemoteUrl: Source descriptors
- DestinationDescriptor: Upload URL plus opaque metadata
- TransferSpec: Everything needed to start a transfer
- ResolvedSource: Size, MIME type and name found by the source resolver
- Checkpoint: Durable snapshot used to resume a suspended transfer
- TransferOutcome: Terminal value of a run (completed, suspended or failed)
- TransferProgress: Per-chunk progress report
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar

from chunkrelay.core.chunking import ChunkPlan, ChunkRange
from chunkrelay.core.config import TransferConfig
from chunkrelay.core.errors import RelayError, ValidationError
from chunkrelay.core.types import TransferState

SUSPENDED_MESSAGE = "There is a next upload chunk. Run the transfer again to continue."


@dataclass(frozen=True)
class ManagedFile:
    """A file held by a managed storage service, addressed by ID."""

    file_id: str
    kind: ClassVar[str] = "managed_file"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "file_id": self.file_id}


@dataclass(frozen=True)
class RemoteUrl:
    """A file served by any HTTP server that honours Range requests."""

    url: str
    kind: ClassVar[str] = "remote_url"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "url": self.url}


SourceDescriptor = ManagedFile | RemoteUrl


def source_from_dict(data: dict[str, Any]) -> SourceDescriptor:
    """Create a source descriptor from its dictionary form.

    Raises:
        ValidationError: If the kind is unknown or a field is missing.
    """
    kind = data.get("kind")
    if kind == ManagedFile.kind and data.get("file_id"):
        return ManagedFile(file_id=str(data["file_id"]))
    if kind == RemoteUrl.kind and data.get("url"):
        return RemoteUrl(url=str(data["url"]))
    raise ValidationError(f"Invalid source descriptor: {data!r}")


@dataclass(frozen=True)
class DestinationDescriptor:
    """Where the payload goes.

    Attributes:
        upload_url: Resumable-upload endpoint, must carry uploadType=resumable
            and may carry an API key.
        metadata: JSON object sent verbatim when opening the session.
    """

    upload_url: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"upload_url": self.upload_url, "metadata": self.metadata}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DestinationDescriptor:
        """Create from dictionary."""
        return cls(upload_url=data["upload_url"], metadata=data.get("metadata") or {})


@dataclass(frozen=True)
class TransferSpec:
    """Input of a transfer. Immutable once the run begins."""

    source: SourceDescriptor
    destination: DestinationDescriptor
    token: str | None = None
    config: TransferConfig = field(default_factory=TransferConfig)

    def validate(self) -> None:
        """Check the spec is usable.

        Raises:
            ValidationError: If a descriptor is missing or malformed.
        """
        if isinstance(self.source, ManagedFile):
            if not self.source.file_id:
                raise ValidationError("Managed file source requires a file ID")
        elif isinstance(self.source, RemoteUrl):
            if not self.source.url:
                raise ValidationError("Remote URL source requires a URL")
        else:
            raise ValidationError(f"Unknown source descriptor: {self.source!r}")
        if not isinstance(self.destination.upload_url, str) or not self.destination.upload_url:
            raise ValidationError("Destination requires an upload URL")
        if not isinstance(self.destination.metadata, dict):
            raise ValidationError("Destination metadata must be a JSON object")

    def with_token(self, token: str | None) -> TransferSpec:
        return replace(self, token=token)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.to_dict(),
            "destination": self.destination.to_dict(),
            "token": self.token,
            "config": self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransferSpec:
        """Create from dictionary."""
        return cls(
            source=source_from_dict(data["source"]),
            destination=DestinationDescriptor.from_dict(data["destination"]),
            token=data.get("token"),
            config=TransferConfig.from_dict(data.get("config") or {}),
        )


@dataclass(frozen=True)
class ResolvedSource:
    """Source fields found by the resolver."""

    mime_type: str
    size_bytes: int
    file_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "file_name": self.file_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolvedSource:
        """Create from dictionary."""
        return cls(
            mime_type=data["mime_type"],
            size_bytes=int(data["size_bytes"]),
            file_name=data["file_name"],
        )


@dataclass(frozen=True)
class Checkpoint:
    """Snapshot of a suspended transfer.

    Replaced wholesale on every write, never partially updated.

    Attributes:
        spec: The spec the transfer was started with.
        source: Resolved source fields.
        chunks: The chunk plan.
        location: Session location issued by the destination.
        next_chunk_index: First chunk the next invocation uploads.
        started_at: Timestamp at which the transfer was first started.
    """

    spec: TransferSpec
    source: ResolvedSource
    chunks: ChunkPlan
    location: str
    next_chunk_index: int
    started_at: float

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def advance_to(self, next_chunk_index: int) -> Checkpoint:
        """Return a copy resuming at next_chunk_index."""
        return replace(self, next_chunk_index=next_chunk_index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "spec": self.spec.to_dict(),
            "source": self.source.to_dict(),
            "chunks": [chunk.to_list() for chunk in self.chunks],
            "location": self.location,
            "next_chunk_index": self.next_chunk_index,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Checkpoint:
        """Create from dictionary.

        Raises:
            ValidationError: If the record is incomplete.
        """
        try:
            return cls(
                spec=TransferSpec.from_dict(data["spec"]),
                source=ResolvedSource.from_dict(data["source"]),
                chunks=tuple(ChunkRange(int(s), int(e)) for s, e in data["chunks"]),
                location=data["location"],
                next_chunk_index=int(data["next_chunk_index"]),
                started_at=float(data["started_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid checkpoint record: {e}") from e


@dataclass
class TransferOutcome:
    """Result of a transfer run.

    Suspension is not an error: it means the transfer must be run again.
    """

    state: TransferState
    result: dict[str, Any] | None = None
    message: str | None = None
    next_chunk_index: int | None = None
    error: RelayError | None = None

    @classmethod
    def completed(cls, result: dict[str, Any]) -> TransferOutcome:
        return cls(state=TransferState.COMPLETED, result=result)

    @classmethod
    def suspended(cls, next_chunk_index: int) -> TransferOutcome:
        return cls(
            state=TransferState.SUSPENDED,
            message=SUSPENDED_MESSAGE,
            next_chunk_index=next_chunk_index,
        )

    @classmethod
    def failed(cls, error: RelayError) -> TransferOutcome:
        return cls(state=TransferState.FAILED, message=str(error), error=error)

    @property
    def is_completed(self) -> bool:
        return self.state is TransferState.COMPLETED

    @property
    def is_suspended(self) -> bool:
        return self.state is TransferState.SUSPENDED

    @property
    def is_failed(self) -> bool:
        return self.state is TransferState.FAILED

    def unwrap(self) -> dict[str, Any]:
        """Return the final result, or {"message": ...} when suspended.

        Raises:
            RelayError: The failure of a failed run.
        """
        if self.error is not None:
            raise self.error
        if self.is_suspended:
            return {"message": self.message}
        return self.result or {}


@dataclass
class TransferProgress:
    """Progress information after each chunk."""

    file_name: str
    chunk_index: int
    total_chunks: int
    bytes_transferred: int
    size_bytes: int

    @property
    def percent(self) -> float:
        """Get progress percentage."""
        if self.size_bytes == 0:
            return 100.0
        return (self.bytes_transferred / self.size_bytes) * 100


# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]
