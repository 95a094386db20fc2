"""Shared pytest fixtures for chunkrelay tests."""

from __future__ import annotations

import pytest

from chunkrelay.transfer.checkpoint import MemoryCheckpointStore
from tests.fixtures import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def store() -> MemoryCheckpointStore:
    """Create an empty in-memory checkpoint store."""
    return MemoryCheckpointStore()
