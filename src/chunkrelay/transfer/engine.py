"""Checkpointed chunked transfer engine.

This module provides:
- TransferEngine: Drives a transfer from source to destination, one chunk
  at a time, suspending with a checkpoint when the time budget runs out

Each invocation either completes the transfer, suspends it (writing a
checkpoint that the next invocation resumes) or fails. A pending checkpoint
always wins over a newly supplied spec, so only one transfer is in flight
per checkpoint key.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

import httpx

from chunkrelay.core.chunking import plan_chunks
from chunkrelay.core.config import DEFAULT_REQUEST_TIMEOUT, TransferConfig
from chunkrelay.core.errors import RelayError, TransferError, ValidationError
from chunkrelay.core.types import TransferRun, TransferState
from chunkrelay.transfer.checkpoint import (
    DEFAULT_CHECKPOINT_KEY,
    CheckpointSlot,
    CheckpointStore,
)
from chunkrelay.transfer.destination import (
    CONTINUATION_STATUS,
    ResumableDestination,
    ResumableUploadable,
)
from chunkrelay.transfer.models import (
    Checkpoint,
    ProgressCallback,
    TransferOutcome,
    TransferProgress,
    TransferSpec,
)
from chunkrelay.transfer.sources import DRIVE_API_URL, RangeFetchable, make_source

logger = logging.getLogger(__name__)


class TransferEngine:
    """Moves a payload from a ranged source to a resumable-upload destination.

    Chunks are sent strictly in order, one at a time; only one chunk is held
    in memory. The time budget is checked between chunks, never during one.
    """

    def __init__(
        self,
        store: CheckpointStore,
        *,
        key: str = DEFAULT_CHECKPOINT_KEY,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.time,
        progress_callback: ProgressCallback | None = None,
        drive_api_url: str = DRIVE_API_URL,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Key-value store for the checkpoint.
            key: Store key of the checkpoint slot.
            client: HTTP client to use. If None, a client is created per run,
                or once for the whole block when used as a context manager.
            clock: Wall-clock source in seconds.
            progress_callback: Optional callback invoked after each chunk.
            drive_api_url: Base URL of the managed file storage API.
        """
        self._slot = CheckpointSlot(store, key)
        self._client = client
        self._owns_client = False
        self._clock = clock
        self._progress_callback = progress_callback
        self._drive_api_url = drive_api_url
        self.last_run: TransferRun | None = None

    @property
    def client(self) -> httpx.Client | None:
        """HTTP client shared by runs, if one is injected or open."""
        return self._client

    def close(self) -> None:
        """Close the HTTP client if the engine created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
            self._owns_client = False

    def __enter__(self) -> TransferEngine:
        if self._client is None:
            self._client = httpx.Client(timeout=DEFAULT_REQUEST_TIMEOUT)
            self._owns_client = True
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def pending(self) -> Checkpoint | None:
        """Return the checkpoint of the transfer in progress, if any."""
        return self._slot.load()

    def discard(self) -> None:
        """Drop the pending checkpoint so the next run starts afresh."""
        self._slot.clear()
        logger.info(f"Discarded pending transfer {self._slot.key!r}")

    def run(self, spec: TransferSpec | None = None, *, token: str | None = None) -> TransferOutcome:
        """Run (or resume) the transfer for this invocation.

        If a checkpoint is pending it is resumed and spec is ignored, except
        for its credential token which replaces the stored one.

        Args:
            spec: Transfer to start when nothing is pending.
            token: Fresh credential token for a pending transfer. A token
                carried by spec takes precedence.

        Returns:
            TransferOutcome: completed with the destination's final object,
            suspended with the next chunk index, or failed with the error.
        """
        run = TransferRun(started_at=self._clock())
        self.last_run = run
        try:
            checkpoint = self._slot.load()
            if checkpoint is None:
                if spec is None:
                    raise ValidationError("No pending transfer and no transfer spec given")
                spec.validate()
                with self._http(spec.config) as client:
                    checkpoint = self._start(spec, client, run)
                    return self._transfer(checkpoint, client, run)

            run.resumed = True
            checkpoint = self._refresh(checkpoint, spec, token)
            with self._http(checkpoint.spec.config) as client:
                logger.info(
                    f"Resuming {checkpoint.source.file_name} at chunk "
                    f"{checkpoint.next_chunk_index + 1}/{checkpoint.total_chunks}"
                )
                run.transition_to(TransferState.TRANSFERRING)
                return self._transfer(checkpoint, client, run)
        except RelayError as e:
            run.fail()
            logger.error(f"Transfer failed: {e}")
            return TransferOutcome.failed(e)

    def _refresh(
        self,
        checkpoint: Checkpoint,
        spec: TransferSpec | None,
        token: str | None,
    ) -> Checkpoint:
        """Apply a fresh credential token to a pending checkpoint."""
        if spec is not None:
            logger.warning(
                "A transfer is already pending; resuming it and ignoring "
                "the supplied spec"
            )
            token = spec.token or token
        if token and token != checkpoint.spec.token:
            logger.info("Using a fresh credential token for the pending transfer")
            checkpoint = replace(checkpoint, spec=checkpoint.spec.with_token(token))
        return checkpoint

    @contextmanager
    def _http(self, config: TransferConfig) -> Iterator[httpx.Client]:
        if self._client is not None:
            yield self._client
            return
        with httpx.Client(timeout=config.request_timeout) as client:
            yield client

    def _destination(self, spec: TransferSpec, client: httpx.Client) -> ResumableUploadable:
        return ResumableDestination(client, spec.destination, spec.config.upload_method)

    def _source(
        self,
        spec: TransferSpec,
        client: httpx.Client,
        run: TransferRun,
    ) -> RangeFetchable:
        return make_source(
            spec.source,
            client,
            spec.token,
            drive_api_url=self._drive_api_url,
            fallback_name=str(int(run.started_at * 1000)),
        )

    def _start(self, spec: TransferSpec, client: httpx.Client, run: TransferRun) -> Checkpoint:
        """Resolve, plan and negotiate a new transfer."""
        run.transition_to(TransferState.RESOLVING)
        logger.info("Resolving source")
        resolved = self._source(spec, client, run).resolve()
        logger.info(
            f"Source {resolved.file_name}: {resolved.size_bytes} bytes, {resolved.mime_type}"
        )

        run.transition_to(TransferState.PLANNING)
        chunks = plan_chunks(resolved.size_bytes, spec.config.chunk_size)
        logger.info(f"Planned {len(chunks)} chunks of up to {spec.config.chunk_size} bytes")

        run.transition_to(TransferState.NEGOTIATING)
        destination = self._destination(spec, client)
        location = destination.open_session(spec.token)
        logger.info("Upload session opened")

        run.transition_to(TransferState.TRANSFERRING)
        return Checkpoint(
            spec=spec,
            source=resolved,
            chunks=chunks,
            location=location,
            next_chunk_index=0,
            started_at=run.started_at,
        )

    def _transfer(
        self,
        checkpoint: Checkpoint,
        client: httpx.Client,
        run: TransferRun,
    ) -> TransferOutcome:
        """Download and upload chunks from the checkpoint's resume point."""
        spec = checkpoint.spec
        destination = self._destination(spec, client)
        chunks = checkpoint.chunks
        total = checkpoint.source.size_bytes

        if not chunks:
            logger.info("Source is empty, finalizing zero-byte upload")
            reply = destination.finalize_empty(checkpoint.location)
            if not reply.completed:
                raise TransferError(
                    "Destination did not finalize the zero-byte upload", CONTINUATION_STATUS
                )
            return self._complete(run, reply.result)

        start_index = checkpoint.next_chunk_index
        if not 0 <= start_index < len(chunks):
            raise ValidationError(
                f"Checkpoint resumes at chunk {start_index} of {len(chunks)}"
            )

        source = self._source(spec, client, run)
        last_index = len(chunks) - 1
        for index in range(start_index, len(chunks)):
            chunk = chunks[index]
            logger.info(f"Chunk {index + 1}/{len(chunks)} bytes={chunk.bytes_spec}")
            data = source.fetch_range(chunk, index)
            reply = destination.upload_chunk(checkpoint.location, chunk, total, data, index)
            # Keep at most one chunk in memory
            del data
            self._report(checkpoint, index, chunk.end + 1)

            if reply.completed:
                return self._complete(run, reply.result)
            if index == last_index:
                raise TransferError(
                    "Destination expects more data after the final chunk",
                    CONTINUATION_STATUS,
                    index,
                )

            elapsed = self._clock() - run.started_at
            if elapsed > spec.config.time_budget:
                next_index = index + 1
                self._slot.save(checkpoint.advance_to(next_index))
                run.transition_to(TransferState.SUSPENDED)
                logger.warning(
                    f"Time budget of {spec.config.time_budget:.0f}s used "
                    f"({elapsed:.0f}s); suspended before chunk "
                    f"{next_index + 1}/{len(chunks)}. Run again to continue."
                )
                return TransferOutcome.suspended(next_index)
            logger.debug("Upload the next chunk")

        raise TransferError("Transfer loop ended without completion")

    def _complete(self, run: TransferRun, result: dict[str, Any] | None) -> TransferOutcome:
        self._slot.clear()
        run.transition_to(TransferState.COMPLETED)
        logger.info("Upload complete")
        return TransferOutcome.completed(result or {})

    def _report(self, checkpoint: Checkpoint, index: int, bytes_transferred: int) -> None:
        if self._progress_callback:
            self._progress_callback(TransferProgress(
                file_name=checkpoint.source.file_name,
                chunk_index=index,
                total_chunks=checkpoint.total_chunks,
                bytes_transferred=bytes_transferred,
                size_bytes=checkpoint.source.size_bytes,
            ))
