"""Fixed-size byte-range chunk planning.

This module provides:
- ChunkRange: One inclusive byte range of the source
- plan_chunks: Ordered partition of a payload into chunk ranges

The plan is a pure function of (size, chunk size) and is computed once per
transfer, then stored unchanged in every checkpoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from chunkrelay.core.errors import ValidationError

DEFAULT_CHUNK_SIZE = 16 * 1024 * 1024  # 16 MB


@dataclass(frozen=True)
class ChunkRange:
    """Inclusive byte range [start, end] of the source."""

    start: int
    end: int

    @property
    def length(self) -> int:
        """Return the number of bytes covered by this range."""
        return self.end - self.start + 1

    @property
    def bytes_spec(self) -> str:
        """Return the range as "start-end"."""
        return f"{self.start}-{self.end}"

    @property
    def range_header(self) -> str:
        """Return the value of a Range request header for this chunk."""
        return f"bytes={self.bytes_spec}"

    def content_range(self, total: int) -> str:
        """Return the value of a Content-Range header for this chunk.

        Args:
            total: Total size of the payload in bytes.
        """
        return f"bytes {self.bytes_spec}/{total}"

    def to_list(self) -> list[int]:
        return [self.start, self.end]


ChunkPlan = tuple[ChunkRange, ...]


def plan_chunks(size_bytes: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> ChunkPlan:
    """Split a payload of size_bytes into consecutive chunk ranges.

    Every range is chunk_size long except the last, which ends at
    size_bytes - 1. A zero-byte payload yields an empty plan.

    Args:
        size_bytes: Total payload size in bytes.
        chunk_size: Size of each chunk in bytes.

    Returns:
        Tuple of ChunkRange in increasing order.

    Raises:
        ValidationError: If size_bytes is negative or chunk_size is not positive.
    """
    if size_bytes < 0:
        raise ValidationError(f"Size must not be negative: {size_bytes}")
    if chunk_size <= 0:
        raise ValidationError(f"Chunk size must be positive: {chunk_size}")

    return tuple(
        ChunkRange(start, min(start + chunk_size, size_bytes) - 1)
        for start in range(0, size_bytes, chunk_size)
    )
