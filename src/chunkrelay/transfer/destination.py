"""Resumable-upload destination.

This module provides:
- ChunkReply: Classified answer to a chunk upload
- ResumableUploadable: Protocol for resumable-upload destinations
- ResumableDestination: Session negotiation and chunk upload over HTTP

Protocol:
    1. POST the JSON metadata to the upload URL; the session location comes
       back in the Location header.
    2. Send each chunk to the location with a Content-Range header.
    3. 308 asks for the next chunk, 2xx carries the final JSON object,
       anything else is a failure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urljoin

import httpx

from chunkrelay.core.chunking import ChunkRange
from chunkrelay.core.errors import ConfigurationError, SessionError, TransferError
from chunkrelay.core.query import declares_resumable, has_api_key, parse_query_parameters
from chunkrelay.transfer.models import DestinationDescriptor

logger = logging.getLogger(__name__)

CONTINUATION_STATUS = 308


@dataclass
class ChunkReply:
    """Destination answer to one chunk.

    Attributes:
        completed: True when the destination finalized the upload.
        result: Final JSON object (only when completed).
    """

    completed: bool
    result: dict[str, Any] | None = None


class ResumableUploadable(Protocol):
    """A destination speaking the resumable-upload protocol."""

    def open_session(self, token: str | None) -> str: ...

    def upload_chunk(
        self,
        location: str,
        chunk: ChunkRange,
        total: int,
        data: bytes,
        chunk_index: int | None = None,
    ) -> ChunkReply: ...

    def finalize_empty(self, location: str) -> ChunkReply: ...


class ResumableDestination:
    """HTTP client side of the resumable-upload protocol."""

    def __init__(
        self,
        client: httpx.Client,
        descriptor: DestinationDescriptor,
        method: str = "PUT",
    ) -> None:
        """Initialize the destination.

        Args:
            client: HTTP client. Must not follow redirects, so 308 is seen.
            descriptor: Upload URL and metadata.
            method: HTTP method for chunk requests.
        """
        self._client = client
        self._descriptor = descriptor
        self._method = method

    def open_session(self, token: str | None) -> str:
        """Open a resumable-upload session.

        An API key in the upload URL is enough to authenticate, so the
        bearer header is only sent when the URL has none.

        Args:
            token: Bearer token.

        Returns:
            The session location.

        Raises:
            ConfigurationError: If the URL does not declare resumable mode,
                or no credential is available.
            SessionError: If the destination rejects the request.
        """
        upload_url = self._descriptor.upload_url
        parsed = parse_query_parameters(upload_url)
        if not declares_resumable(parsed):
            raise ConfigurationError(
                "Upload URL must declare resumable mode; include "
                f"uploadType=resumable in {parsed.url}"
            )

        headers = {"Content-Type": "application/json; charset=UTF-8"}
        if not has_api_key(parsed):
            if not token:
                raise ConfigurationError(
                    "A credential token is required when the upload URL has no API key"
                )
            headers["Authorization"] = f"Bearer {token}"

        logger.debug(f"Opening upload session at {parsed.url}")
        try:
            response = self._client.post(
                upload_url,
                content=json.dumps(self._descriptor.metadata).encode(),
                headers=headers,
            )
        except httpx.TransportError as e:
            raise SessionError(f"Session request failed: {e}") from e

        if not response.is_success:
            raise SessionError(response.text, response.status_code)

        location = response.headers.get("Location")
        if not location:
            raise SessionError(
                "Destination did not return a session location", response.status_code
            )
        return urljoin(upload_url, location)

    def _send(
        self,
        location: str,
        content_range: str,
        data: bytes,
        chunk_index: int | None,
    ) -> ChunkReply:
        try:
            response = self._client.request(
                self._method,
                location,
                content=data,
                headers={"Content-Range": content_range},
            )
        except httpx.TransportError as e:
            raise TransferError(f"Upload failed: {e}", chunk_index=chunk_index) from e

        if response.status_code == CONTINUATION_STATUS:
            return ChunkReply(completed=False)
        if response.is_success:
            if not response.content:
                return ChunkReply(completed=True, result={})
            try:
                result = response.json()
            except ValueError as e:
                raise TransferError(response.text, response.status_code, chunk_index) from e
            return ChunkReply(completed=True, result=result)
        raise TransferError(response.text, response.status_code, chunk_index)

    def upload_chunk(
        self,
        location: str,
        chunk: ChunkRange,
        total: int,
        data: bytes,
        chunk_index: int | None = None,
    ) -> ChunkReply:
        """Send one chunk to the session.

        Args:
            location: Session location.
            chunk: Byte range of this chunk.
            total: Total payload size.
            data: Chunk bytes.
            chunk_index: Index for error reporting.

        Returns:
            ChunkReply telling whether the upload is complete.

        Raises:
            TransferError: If the reply is neither 2xx nor 308.
        """
        return self._send(location, chunk.content_range(total), data, chunk_index)

    def finalize_empty(self, location: str) -> ChunkReply:
        """Finalize a zero-byte upload with a single empty request."""
        return self._send(location, "bytes */0", b"", None)
