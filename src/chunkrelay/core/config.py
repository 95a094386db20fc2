"""Transfer configuration.

This module defines the per-transfer settings carried by a TransferSpec and
stored with every checkpoint.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from chunkrelay.core.chunking import DEFAULT_CHUNK_SIZE
from chunkrelay.core.errors import ValidationError

DEFAULT_TIME_BUDGET = 300.0  # seconds
DEFAULT_REQUEST_TIMEOUT = 120.0  # seconds
UPLOAD_METHODS = ("PUT", "POST")


@dataclass(frozen=True)
class TransferConfig:
    """Settings for one transfer.

    Attributes:
        chunk_size: Bytes per chunk (default 16 MB).
        time_budget: Seconds an invocation may spend before suspending.
        request_timeout: Timeout of each HTTP request in seconds.
        upload_method: HTTP method used to send chunks to the session.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    time_budget: float = DEFAULT_TIME_BUDGET
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    upload_method: str = "PUT"

    def __post_init__(self) -> None:
        """Validate values."""
        if self.chunk_size <= 0:
            raise ValidationError(f"chunk_size must be positive: {self.chunk_size}")
        if self.time_budget <= 0:
            raise ValidationError(f"time_budget must be positive: {self.time_budget}")
        if self.request_timeout <= 0:
            raise ValidationError(
                f"request_timeout must be positive: {self.request_timeout}"
            )
        if self.upload_method not in UPLOAD_METHODS:
            raise ValidationError(
                f"upload_method must be one of {', '.join(UPLOAD_METHODS)}: "
                f"{self.upload_method}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransferConfig:
        """Create from a dictionary, ignoring unknown keys."""
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        return cls(**known)
