"""chunkrelay - Checkpointed chunked transfer to resumable-upload destinations."""

__version__ = "0.1.0"
