"""Tests for the resumable-upload destination."""

import json

import httpx
import pytest

from chunkrelay.core.chunking import ChunkRange
from chunkrelay.core.errors import ConfigurationError, SessionError, TransferError
from chunkrelay.transfer.destination import ResumableDestination
from chunkrelay.transfer.models import DestinationDescriptor
from tests.fixtures import SESSION_URL, UPLOAD_URL, add_session

DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files?uploadType=resumable"


def make_destination(
    client: httpx.Client,
    upload_url: str = UPLOAD_URL,
    metadata: dict[str, object] | None = None,
    method: str = "PUT",
) -> ResumableDestination:
    """Create a ResumableDestination for testing."""
    return ResumableDestination(
        client,
        DestinationDescriptor(upload_url, metadata or {"file": {"displayName": "video"}}),
        method=method,
    )


class TestOpenSession:
    """Tests for session negotiation."""

    def test_returns_location(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return the Location header of the response."""
        add_session(httpx_mock)

        with httpx.Client() as client:
            location = make_destination(client).open_session("token-1")

        assert location == SESSION_URL

    def test_sends_metadata_as_json(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send the metadata blob verbatim."""
        add_session(httpx_mock)
        metadata = {"snippet": {"title": "Sample"}, "status": {"privacyStatus": "private"}}

        with httpx.Client() as client:
            make_destination(client, metadata=metadata).open_session("token-1")

        request = httpx_mock.get_requests()[0]
        assert json.loads(request.content) == metadata
        assert request.headers["Content-Type"].startswith("application/json")

    def test_api_key_skips_bearer(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should not send Authorization when the URL carries a key."""
        add_session(httpx_mock)

        with httpx.Client() as client:
            make_destination(client).open_session("token-1")

        assert "Authorization" not in httpx_mock.get_requests()[0].headers

    def test_bearer_without_api_key(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send the bearer token when the URL has no key."""
        add_session(httpx_mock, url=DRIVE_UPLOAD_URL)

        with httpx.Client() as client:
            make_destination(client, upload_url=DRIVE_UPLOAD_URL).open_session("token-1")

        assert httpx_mock.get_requests()[0].headers["Authorization"] == "Bearer token-1"

    def test_no_credentials_raises(self) -> None:
        """Should require a token when the URL has no key."""
        with httpx.Client() as client, pytest.raises(ConfigurationError):
            make_destination(client, upload_url=DRIVE_UPLOAD_URL).open_session(None)

    def test_missing_resumable_mode_raises(self) -> None:
        """Should reject upload URLs without uploadType=resumable."""
        with httpx.Client() as client, pytest.raises(ConfigurationError, match="uploadType"):
            make_destination(
                client, upload_url="https://www.googleapis.com/upload/drive/v3/files"
            ).open_session("token-1")

    def test_error_response_raises_with_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise SessionError carrying the raw body."""
        httpx_mock.add_response(
            url=UPLOAD_URL,
            method="POST",
            status_code=400,
            text='{"error": {"message": "API key not valid"}}',
        )

        with httpx.Client() as client, pytest.raises(SessionError) as exc_info:
            make_destination(client).open_session(None)

        assert exc_info.value.status_code == 400
        assert "API key not valid" in exc_info.value.body

    def test_missing_location_raises(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise SessionError when no Location is returned."""
        httpx_mock.add_response(url=UPLOAD_URL, method="POST", status_code=200)

        with httpx.Client() as client, pytest.raises(SessionError):
            make_destination(client).open_session(None)

    def test_relative_location_is_resolved(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should resolve a relative Location against the upload URL."""
        add_session(httpx_mock, location="/upload/v1/files?upload_id=rel")

        with httpx.Client() as client:
            location = make_destination(client).open_session(None)

        assert location == "https://upload.example.com/upload/v1/files?upload_id=rel"


class TestUploadChunk:
    """Tests for chunk upload reply handling."""

    def test_continuation(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should report continuation on 308."""
        httpx_mock.add_response(
            url=SESSION_URL,
            method="PUT",
            status_code=308,
            match_headers={"Content-Range": "bytes 0-9/25"},
        )

        with httpx.Client() as client:
            reply = make_destination(client).upload_chunk(
                SESSION_URL, ChunkRange(0, 9), 25, b"x" * 10, 0
            )

        assert reply.completed is False
        assert httpx_mock.get_requests()[0].content == b"x" * 10

    def test_completion(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should parse the final JSON body on 200."""
        httpx_mock.add_response(url=SESSION_URL, method="PUT", json={"id": "abc"})

        with httpx.Client() as client:
            reply = make_destination(client).upload_chunk(
                SESSION_URL, ChunkRange(20, 24), 25, b"x" * 5, 2
            )

        assert reply.completed is True
        assert reply.result == {"id": "abc"}

    def test_completion_with_empty_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should treat an empty 201 body as an empty result."""
        httpx_mock.add_response(url=SESSION_URL, method="PUT", status_code=201)

        with httpx.Client() as client:
            reply = make_destination(client).upload_chunk(
                SESSION_URL, ChunkRange(0, 4), 5, b"x" * 5
            )

        assert reply.completed is True
        assert reply.result == {}

    def test_completion_with_non_json_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise TransferError carrying the body when 2xx is not JSON."""
        httpx_mock.add_response(url=SESSION_URL, method="PUT", status_code=200, text="OK")

        with httpx.Client() as client, pytest.raises(TransferError) as exc_info:
            make_destination(client).upload_chunk(
                SESSION_URL, ChunkRange(20, 24), 25, b"x" * 5, 2
            )

        assert exc_info.value.body == "OK"
        assert exc_info.value.status_code == 200
        assert exc_info.value.chunk_index == 2

    def test_other_status_raises(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should raise TransferError for any other status."""
        httpx_mock.add_response(
            url=SESSION_URL, method="PUT", status_code=503, text="Service Unavailable"
        )

        with httpx.Client() as client, pytest.raises(TransferError) as exc_info:
            make_destination(client).upload_chunk(
                SESSION_URL, ChunkRange(10, 19), 25, b"x" * 10, 1
            )

        assert exc_info.value.status_code == 503
        assert exc_info.value.chunk_index == 1
        assert exc_info.value.body == "Service Unavailable"

    def test_post_method(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should use the configured HTTP method."""
        httpx_mock.add_response(url=SESSION_URL, method="POST", status_code=308)

        with httpx.Client() as client:
            make_destination(client, method="POST").upload_chunk(
                SESSION_URL, ChunkRange(0, 9), 25, b"x" * 10
            )

    def test_finalize_empty(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should finalize a zero-byte upload with bytes */0."""
        httpx_mock.add_response(
            url=SESSION_URL,
            method="PUT",
            json={"id": "empty"},
            match_headers={"Content-Range": "bytes */0"},
        )

        with httpx.Client() as client:
            reply = make_destination(client).finalize_empty(SESSION_URL)

        assert reply.result == {"id": "empty"}
        assert httpx_mock.get_requests()[0].content == b""
