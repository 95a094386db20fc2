"""Transfer module - Sources, destination, checkpoints and the engine."""

from chunkrelay.transfer.checkpoint import (
    DEFAULT_CHECKPOINT_KEY,
    CheckpointSlot,
    CheckpointStore,
    MemoryCheckpointStore,
    SqliteCheckpointStore,
)
from chunkrelay.transfer.destination import (
    ChunkReply,
    ResumableDestination,
    ResumableUploadable,
)
from chunkrelay.transfer.engine import TransferEngine
from chunkrelay.transfer.models import (
    Checkpoint,
    DestinationDescriptor,
    ManagedFile,
    ProgressCallback,
    RemoteUrl,
    ResolvedSource,
    TransferOutcome,
    TransferProgress,
    TransferSpec,
)
from chunkrelay.transfer.sources import (
    ManagedFileSource,
    RangeFetchable,
    RemoteUrlSource,
    make_source,
)

__all__ = [
    # Checkpoints
    "DEFAULT_CHECKPOINT_KEY",
    "CheckpointSlot",
    "CheckpointStore",
    "MemoryCheckpointStore",
    "SqliteCheckpointStore",
    # Destination
    "ChunkReply",
    "ResumableDestination",
    "ResumableUploadable",
    # Engine
    "TransferEngine",
    # Models
    "Checkpoint",
    "DestinationDescriptor",
    "ManagedFile",
    "ProgressCallback",
    "RemoteUrl",
    "ResolvedSource",
    "TransferOutcome",
    "TransferProgress",
    "TransferSpec",
    # Sources
    "ManagedFileSource",
    "RangeFetchable",
    "RemoteUrlSource",
    "make_source",
]
