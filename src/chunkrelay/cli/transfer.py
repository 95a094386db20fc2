"""Transfer commands for the chunkrelay CLI.

Commands:
- run: Start a transfer, or resume the pending one
- status: Show the pending transfer
- clear: Forget the pending transfer
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import click

from chunkrelay.cli.config import get_state_db, load_config, setup_logging
from chunkrelay.core.chunking import DEFAULT_CHUNK_SIZE
from chunkrelay.core.config import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TIME_BUDGET,
    UPLOAD_METHODS,
    TransferConfig,
)
from chunkrelay.core.errors import RelayError
from chunkrelay.transfer.checkpoint import DEFAULT_CHECKPOINT_KEY, SqliteCheckpointStore
from chunkrelay.transfer.engine import TransferEngine
from chunkrelay.transfer.models import (
    DestinationDescriptor,
    ManagedFile,
    RemoteUrl,
    SourceDescriptor,
    TransferSpec,
)

# Exit code telling an external trigger to invoke us again
EXIT_SUSPENDED = 3

state_db_option = click.option(
    "--state-db",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Checkpoint database (default: ~/.chunkrelay/state.db).",
)
key_option = click.option(
    "--key",
    default=DEFAULT_CHECKPOINT_KEY,
    show_default=True,
    help="Checkpoint key; one pending transfer per key.",
)


def _parse_metadata(value: str) -> dict[str, Any]:
    try:
        metadata = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--metadata") from e
    if not isinstance(metadata, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--metadata")
    return metadata


def _build_spec(
    file_id: str | None,
    url: str | None,
    upload_url: str | None,
    metadata: str,
    token: str | None,
    transfer_config: TransferConfig,
) -> TransferSpec | None:
    """Build a spec from options, or None when no source was given."""
    if file_id and url:
        raise click.UsageError("Use either --file-id or --url, not both.")
    if not file_id and not url:
        return None
    if not upload_url:
        raise click.UsageError("--upload-url is required to start a transfer.")

    source: SourceDescriptor = ManagedFile(file_id) if file_id else RemoteUrl(url or "")
    return TransferSpec(
        source=source,
        destination=DestinationDescriptor(upload_url, _parse_metadata(metadata)),
        token=token,
        config=transfer_config,
    )


@click.command()
@click.option("--file-id", help="ID of a file in managed storage.")
@click.option("--url", help="URL of a file served with Range support.")
@click.option("--upload-url", help="Resumable upload endpoint (uploadType=resumable).")
@click.option("--metadata", default="{}", show_default=True, help="Destination metadata (JSON).")
@click.option("--token", envvar="CHUNKRELAY_TOKEN", help="Bearer token [env: CHUNKRELAY_TOKEN].")
@click.option("--chunk-size", type=int, help=f"Chunk size in bytes [default: {DEFAULT_CHUNK_SIZE}].")
@click.option("--time-budget", type=float, help=f"Seconds per run [default: {DEFAULT_TIME_BUDGET:.0f}].")
@click.option("--method", type=click.Choice(UPLOAD_METHODS), help="Chunk upload method [default: PUT].")
@state_db_option
@key_option
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def run(
    file_id: str | None,
    url: str | None,
    upload_url: str | None,
    metadata: str,
    token: str | None,
    chunk_size: int | None,
    time_budget: float | None,
    method: str | None,
    state_db: Path | None,
    key: str,
    verbose: bool,
) -> None:
    """Start a transfer, or resume the pending one.

    A pending transfer is always resumed first; source and destination
    options are then ignored, but --token replaces the stored credential.
    When the time budget runs out the command exits with status 3 and must
    be run again.
    """
    setup_logging(verbose)

    try:
        config = load_config()
        transfer_config = TransferConfig(
            chunk_size=(
                chunk_size if chunk_size is not None
                else int(config.get("chunk_size", DEFAULT_CHUNK_SIZE))
            ),
            time_budget=(
                time_budget if time_budget is not None
                else float(config.get("time_budget", DEFAULT_TIME_BUDGET))
            ),
            request_timeout=float(config.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
            upload_method=method or config.get("upload_method", "PUT"),
        )
    except (RelayError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    spec = _build_spec(file_id, url, upload_url, metadata, token, transfer_config)

    with SqliteCheckpointStore(state_db or get_state_db(config)) as store:
        outcome = TransferEngine(store, key=key).run(spec, token=token)

    if outcome.is_completed:
        click.echo(json.dumps(outcome.result, indent=2))
    elif outcome.is_suspended:
        click.echo(outcome.message)
        sys.exit(EXIT_SUSPENDED)
    else:
        click.echo(f"Error: {outcome.message}", err=True)
        sys.exit(1)


@click.command()
@state_db_option
@key_option
def status(state_db: Path | None, key: str) -> None:
    """Show the pending transfer, if any."""
    with SqliteCheckpointStore(state_db or get_state_db()) as store:
        try:
            checkpoint = TransferEngine(store, key=key).pending()
        except RelayError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    if checkpoint is None:
        click.echo("No pending transfer.")
        return

    started = datetime.fromtimestamp(checkpoint.started_at).isoformat(timespec="seconds")
    click.echo(f"Pending: {checkpoint.source.file_name} ({checkpoint.source.size_bytes} bytes)")
    click.echo(f"Next chunk: {checkpoint.next_chunk_index + 1}/{checkpoint.total_chunks}")
    click.echo(f"Started: {started}")


@click.command()
@state_db_option
@key_option
def clear(state_db: Path | None, key: str) -> None:
    """Forget the pending transfer so the next run starts afresh."""
    with SqliteCheckpointStore(state_db or get_state_db()) as store:
        engine = TransferEngine(store, key=key)
        if store.get(key) is None:
            click.echo("No pending transfer.")
            return
        engine.discard()
    click.echo("Pending transfer cleared.")
