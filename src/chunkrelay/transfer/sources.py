"""Byte-range fetchable sources.

This module provides:
- RangeFetchable: Protocol for sources that resolve and serve byte ranges
- ManagedFileSource: File in a managed storage API (Google Drive v3 shape)
- RemoteUrlSource: Any HTTP URL that answers Range requests
- make_source: Pick the adapter for a source descriptor

Header parsing (Content-Range, Content-Type, Content-Disposition) lives here
so the transfer loop never looks at raw headers.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Protocol
from urllib.parse import unquote

import httpx

from chunkrelay.core.chunking import ChunkRange
from chunkrelay.core.errors import (
    RangeUnsupported,
    SourceError,
    TransferError,
    UnsupportedSourceKind,
)
from chunkrelay.transfer.models import (
    ManagedFile,
    RemoteUrl,
    ResolvedSource,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
NATIVE_MIME_PREFIX = "application/vnd.google-apps"
DEFAULT_MIME_TYPE = "application/octet-stream"

_CONTENT_RANGE_RE = re.compile(r"^\s*bytes\s+(?:\d+-\d+|\*)\s*/\s*(\d+|\*)\s*$", re.I)
_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*([^']*)'[^']*'([^;]+)", re.I)
_FILENAME_RE = re.compile(r'filename\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^;]+))', re.I)


class RangeFetchable(Protocol):
    """A source that can report its size and serve inclusive byte ranges."""

    def resolve(self) -> ResolvedSource: ...

    def fetch_range(self, chunk: ChunkRange, chunk_index: int | None = None) -> bytes: ...


def parse_content_range_total(value: str) -> int | None:
    """Extract the total size from a Content-Range header.

    Returns:
        Total size in bytes, or None when the header is malformed or the
        total is unknown ("*").
    """
    match = _CONTENT_RANGE_RE.match(value)
    if not match or match.group(1) == "*":
        return None
    return int(match.group(1))


def parse_mime_type(value: str | None) -> str:
    """Return the media type of a Content-Type header without parameters."""
    if not value:
        return DEFAULT_MIME_TYPE
    return value.split(";", 1)[0].strip() or DEFAULT_MIME_TYPE


def parse_filename(value: str | None) -> str | None:
    """Extract the file name from a Content-Disposition header.

    RFC 5987 "filename*" takes precedence over plain "filename".
    """
    if not value:
        return None
    match = _FILENAME_STAR_RE.search(value)
    if match:
        encoding = match.group(1) or "utf-8"
        try:
            name = unquote(match.group(2).strip(), encoding=encoding)
        except LookupError:
            name = unquote(match.group(2).strip())
        return name or None
    match = _FILENAME_RE.search(value)
    if match:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        return name.strip() or None
    return None


def _read_range(
    client: httpx.Client,
    url: str,
    chunk: ChunkRange,
    chunk_index: int | None,
    headers: dict[str, str],
    params: dict[str, str] | None = None,
) -> bytes:
    """GET one byte range and check the answer covers it exactly."""
    logger.debug(f"Downloading bytes {chunk.bytes_spec} from {url}")
    try:
        response = client.get(
            url,
            params=params,
            headers={**headers, "Range": chunk.range_header},
            follow_redirects=True,
        )
    except httpx.TransportError as e:
        raise TransferError(f"Download failed: {e}", chunk_index=chunk_index) from e

    if not response.is_success:
        raise TransferError(response.text, response.status_code, chunk_index)
    data = response.content
    if len(data) != chunk.length:
        raise TransferError(
            f"Expected {chunk.length} bytes for range {chunk.bytes_spec}, "
            f"got {len(data)}",
            response.status_code,
            chunk_index,
        )
    return data


class ManagedFileSource:
    """File in a managed storage service.

    Metadata and content are fetched with the caller's bearer token.
    """

    def __init__(
        self,
        client: httpx.Client,
        file_id: str,
        token: str | None,
        api_url: str = DRIVE_API_URL,
    ) -> None:
        """Initialize the source.

        Args:
            client: HTTP client.
            file_id: ID of the file in the storage service.
            token: Bearer token for the storage service.
            api_url: Base URL of the storage API.
        """
        self._client = client
        self._file_id = file_id
        self._token = token
        self._file_url = f"{api_url.rstrip('/')}/files/{file_id}"

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def resolve(self) -> ResolvedSource:
        """Look up the file's MIME type, size and name.

        Raises:
            SourceError: If the lookup fails.
            UnsupportedSourceKind: If the file is a provider-native document.
        """
        try:
            response = self._client.get(
                self._file_url,
                params={"supportsAllDrives": "true", "fields": "mimeType,size,name"},
                headers=self._auth_headers(),
            )
        except httpx.TransportError as e:
            raise SourceError(f"Metadata lookup failed: {e}") from e

        if not response.is_success:
            raise SourceError(response.text, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise SourceError(response.text, response.status_code) from e
        if not isinstance(data, dict):
            raise SourceError(response.text, response.status_code)
        mime_type = data.get("mimeType") or DEFAULT_MIME_TYPE
        if mime_type.startswith(NATIVE_MIME_PREFIX):
            raise UnsupportedSourceKind(
                f"File {self._file_id} is a native document ({mime_type}) "
                "with no binary content"
            )
        if data.get("size") is None:
            raise SourceError(f"File {self._file_id} reports no size")

        return ResolvedSource(
            mime_type=mime_type,
            size_bytes=int(data["size"]),
            file_name=data.get("name") or self._file_id,
        )

    def fetch_range(self, chunk: ChunkRange, chunk_index: int | None = None) -> bytes:
        """Download one byte range of the file content."""
        return _read_range(
            self._client,
            self._file_url,
            chunk,
            chunk_index,
            headers=self._auth_headers(),
            params={"supportsAllDrives": "true", "alt": "media"},
        )


class RemoteUrlSource:
    """File behind a plain URL. Fetched without credentials."""

    def __init__(
        self,
        client: httpx.Client,
        url: str,
        fallback_name: str | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            client: HTTP client.
            url: URL of the file.
            fallback_name: File name to use when the server sends none.
        """
        self._client = client
        self._url = url
        self._fallback_name = fallback_name

    def resolve(self) -> ResolvedSource:
        """Probe the URL with a 2-byte ranged GET.

        The body is not read, so a server ignoring Range does not make us
        download the whole file.

        Raises:
            RangeUnsupported: If the server does not answer 206 with a usable
                Content-Range header.
            SourceError: If the request cannot be sent.
        """
        probe = ChunkRange(0, 1)
        try:
            with self._client.stream(
                "GET",
                self._url,
                headers={"Range": probe.range_header},
                follow_redirects=True,
            ) as response:
                status_code = response.status_code
                headers = response.headers
        except httpx.TransportError as e:
            raise SourceError(f"Probe of {self._url} failed: {e}") from e

        content_range = headers.get("Content-Range")
        if status_code != 206 or not content_range:
            raise RangeUnsupported(
                f"{self._url} does not support ranged downloads "
                f"(status {status_code})",
                status_code,
            )
        size = parse_content_range_total(content_range)
        if size is None:
            raise RangeUnsupported(
                f"{self._url} sent an unusable Content-Range: {content_range}",
                status_code,
            )

        file_name = parse_filename(headers.get("Content-Disposition"))
        if file_name is None:
            file_name = self._fallback_name or str(int(time.time() * 1000))

        return ResolvedSource(
            mime_type=parse_mime_type(headers.get("Content-Type")),
            size_bytes=size,
            file_name=file_name,
        )

    def fetch_range(self, chunk: ChunkRange, chunk_index: int | None = None) -> bytes:
        """Download one byte range of the file."""
        return _read_range(self._client, self._url, chunk, chunk_index, headers={})


def make_source(
    descriptor: SourceDescriptor,
    client: httpx.Client,
    token: str | None,
    *,
    drive_api_url: str = DRIVE_API_URL,
    fallback_name: str | None = None,
) -> RangeFetchable:
    """Create the adapter for a source descriptor.

    Only managed files receive the credential token.
    """
    if isinstance(descriptor, ManagedFile):
        return ManagedFileSource(client, descriptor.file_id, token, api_url=drive_api_url)
    if isinstance(descriptor, RemoteUrl):
        return RemoteUrlSource(client, descriptor.url, fallback_name=fallback_name)
    raise TypeError(f"Unknown source descriptor: {descriptor!r}")
