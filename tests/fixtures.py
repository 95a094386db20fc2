"""HTTP mock helpers and builders shared by chunkrelay tests."""

from __future__ import annotations

from typing import Any

from chunkrelay.core.config import TransferConfig
from chunkrelay.transfer.models import (
    DestinationDescriptor,
    ManagedFile,
    RemoteUrl,
    TransferSpec,
)

SOURCE_URL = "https://files.example.com/media/video.mp4"
UPLOAD_URL = "https://upload.example.com/upload/v1/files?uploadType=resumable&key=api-key"
SESSION_URL = "https://upload.example.com/upload/v1/files?upload_id=session-1"
DRIVE_FILE_URL = "https://www.googleapis.com/drive/v3/files/file-1"

# 25 bytes split into 10-byte chunks: [0-9], [10-19], [20-24]
PAYLOAD = bytes(range(25))
CHUNK_SIZE = 10


class FakeClock:
    """Controllable wall clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_spec(
    url: str = SOURCE_URL,
    upload_url: str = UPLOAD_URL,
    token: str | None = "token-1",
    chunk_size: int = CHUNK_SIZE,
    time_budget: float = 300.0,
    metadata: dict[str, Any] | None = None,
) -> TransferSpec:
    """Create a remote-URL TransferSpec for testing."""
    return TransferSpec(
        source=RemoteUrl(url),
        destination=DestinationDescriptor(
            upload_url, metadata if metadata is not None else {"file": {"displayName": "video"}}
        ),
        token=token,
        config=TransferConfig(chunk_size=chunk_size, time_budget=time_budget),
    )


def make_managed_spec(
    file_id: str = "file-1",
    upload_url: str = "https://www.googleapis.com/upload/drive/v3/files?uploadType=resumable",
    token: str | None = "token-1",
    chunk_size: int = CHUNK_SIZE,
) -> TransferSpec:
    """Create a managed-file TransferSpec for testing."""
    return TransferSpec(
        source=ManagedFile(file_id),
        destination=DestinationDescriptor(upload_url, {"name": "video.mp4"}),
        token=token,
        config=TransferConfig(chunk_size=chunk_size),
    )


def add_probe(
    httpx_mock: Any,
    size: int = len(PAYLOAD),
    url: str = SOURCE_URL,
    headers: dict[str, str] | None = None,
) -> None:
    """Register the 2-byte probe answer of a ranged source."""
    httpx_mock.add_response(
        url=url,
        method="GET",
        status_code=206,
        headers=headers
        or {
            "Content-Range": f"bytes 0-1/{size}",
            "Content-Type": "video/mp4",
            "Content-Disposition": 'attachment; filename="video.mp4"',
        },
        content=b"\x00\x01",
        match_headers={"Range": "bytes=0-1"},
    )


def add_session(
    httpx_mock: Any,
    url: str = UPLOAD_URL,
    location: str = SESSION_URL,
) -> None:
    """Register a successful session negotiation."""
    httpx_mock.add_response(
        url=url,
        method="POST",
        status_code=200,
        headers={"Location": location},
    )


def add_download(
    httpx_mock: Any,
    start: int,
    end: int,
    url: str = SOURCE_URL,
    payload: bytes = PAYLOAD,
) -> None:
    """Register the download of one chunk."""
    httpx_mock.add_response(
        url=url,
        method="GET",
        status_code=206,
        content=payload[start : end + 1],
        match_headers={"Range": f"bytes={start}-{end}"},
    )


def add_upload(
    httpx_mock: Any,
    start: int,
    end: int,
    status_code: int = 308,
    json: Any = None,
    total: int = len(PAYLOAD),
    location: str = SESSION_URL,
) -> None:
    """Register the destination answer for one chunk."""
    kwargs: dict[str, Any] = {}
    if json is not None:
        kwargs["json"] = json
    httpx_mock.add_response(
        url=location,
        method="PUT",
        status_code=status_code,
        match_headers={"Content-Range": f"bytes {start}-{end}/{total}"},
        **kwargs,
    )


def add_chunk(
    httpx_mock: Any,
    start: int,
    end: int,
    status_code: int = 308,
    json: Any = None,
) -> None:
    """Register download and upload of one chunk of PAYLOAD."""
    add_download(httpx_mock, start, end)
    add_upload(httpx_mock, start, end, status_code=status_code, json=json)


