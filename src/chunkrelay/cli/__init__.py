"""Command-line interface for chunkrelay.

Commands:
- run: Start or resume a transfer
- status: Show the pending transfer
- clear: Forget the pending transfer
"""

from __future__ import annotations

import click

from chunkrelay.cli.config import (
    get_config_dir,
    get_config_file,
    get_state_db,
    load_config,
    setup_logging,
)
from chunkrelay.cli.transfer import clear, run, status


@click.group()
@click.version_option(package_name="chunkrelay")
def cli() -> None:
    """chunkrelay - Resumable chunked transfers under a time budget."""


cli.add_command(run)
cli.add_command(status)
cli.add_command(clear)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_state_db",
    "load_config",
    "setup_logging",
]
