"""Core module - Chunk planning, query parsing, configuration and errors."""

from chunkrelay.core.chunking import (
    DEFAULT_CHUNK_SIZE,
    ChunkPlan,
    ChunkRange,
    plan_chunks,
)
from chunkrelay.core.config import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TIME_BUDGET,
    TransferConfig,
)
from chunkrelay.core.errors import (
    ConfigurationError,
    RangeUnsupported,
    RelayError,
    SessionError,
    SourceError,
    TransferError,
    UnsupportedSourceKind,
    ValidationError,
)
from chunkrelay.core.query import (
    ParsedUrl,
    declares_resumable,
    has_api_key,
    parse_query_parameters,
)
from chunkrelay.core.types import InvalidTransitionError, TransferRun, TransferState

__all__ = [
    # Chunking
    "DEFAULT_CHUNK_SIZE",
    "ChunkPlan",
    "ChunkRange",
    "plan_chunks",
    # Config
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_TIME_BUDGET",
    "TransferConfig",
    # Errors
    "ConfigurationError",
    "RangeUnsupported",
    "RelayError",
    "SessionError",
    "SourceError",
    "TransferError",
    "UnsupportedSourceKind",
    "ValidationError",
    # Query
    "ParsedUrl",
    "declares_resumable",
    "has_api_key",
    "parse_query_parameters",
    # Types
    "InvalidTransitionError",
    "TransferRun",
    "TransferState",
]
