# SPDX-License-Identifier: MIT
"""Command-line interface for cache relay."""

import functools
import json
import sys
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from . import __version__
from .config import ConfigManager, get_config_manager, set_config_manager
from .enums import SyncStatus
from .logging_config import get_status_logger, setup_logging
from .service import get_sync_service


F = TypeVar("F", bound=Callable[..., Any])


def handle_cli_errors(func: F) -> F:
    """Decorator to handle common CLI error patterns.

    Logs the error (with a traceback when verbose) and exits with status 1.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        status_logger = get_status_logger()
        verbose = kwargs.get("verbose", False)

        try:
            return func(*args, **kwargs)
        except Exception as e:
            if verbose:
                status_logger.error(f"Error in {func.__name__}: {e}")
                traceback.print_exc()
            else:
                status_logger.error(f"Error: {e}")
            sys.exit(1)

    return wrapper  # type: ignore


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit if requested."""
    if value:
        click.echo(f"cache-relay version {__version__}")
        ctx.exit(0)


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version information and exit",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to config.yaml",
)
def main(config_path: Path | None) -> None:
    """Cache relay - replicate page-cache clears across instances."""
    if config_path is not None:
        set_config_manager(ConfigManager(config_path))
    detail_logger, status_logger = setup_logging()
    detail_logger.debug("CLI initialized")


@main.command()
@click.option("--force", is_flag=True, help="Run even if the last pass was recent")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def sync(force: bool, verbose: bool) -> None:
    """Run one reconciliation pass against the shared log."""
    status_logger = get_status_logger()
    result = get_sync_service().reconcile(force=force)

    if result.status == SyncStatus.SKIPPED:
        reason = getattr(result.reason, "value", result.reason)
        status_logger.info(f"Reconciliation skipped: {reason}")
        return
    if result.status == SyncStatus.FAILED:
        status_logger.error(f"Reconciliation failed: {result.reason}")
        sys.exit(1)

    status_logger.info(
        f"Replayed {len(result.replayed)} event(s), "
        f"skipped {result.records_skipped} own row(s), "
        f"pruned {result.records_pruned} row(s)"
    )
    if verbose:
        for event in result.replayed:
            status_logger.info(f"  {event.method.value} {json.dumps(event.data)}")


@main.command()
@click.option(
    "--format",
    "output_format",
    default="text",
    type=click.Choice(["text", "json"]),
    help="Output format",
)
@handle_cli_errors
def status(output_format: str) -> None:
    """Show the synchronization state of this instance."""
    info = get_sync_service().status()

    if output_format == "json":
        click.echo(json.dumps(info, indent=2))
        return

    click.echo("Cache Synchronization Status")
    click.echo("=" * 40)
    for key, value in info.items():
        label = key.replace("_", " ").capitalize()
        click.echo(f"{label}: {'-' if value is None else value}")


@main.command()
@handle_cli_errors
def prune() -> None:
    """Delete log rows older than the retention window."""
    removed = get_sync_service().prune()
    get_status_logger().info(f"Pruned {removed} log row(s).")


@main.command()
@handle_cli_errors
def identity() -> None:
    """Print this instance's identity token."""
    click.echo(get_sync_service().identity.get_identity())


@main.command(name="clear-all")
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt")
@handle_cli_errors
def clear_all(confirm: bool) -> None:
    """Clear the whole local cache and record it for peers."""
    if not confirm:
        click.confirm("This will clear the entire page cache. Continue?", abort=True)

    service = get_sync_service()
    with service.request(reconcile=False):
        service.engine.clear_all()
    get_status_logger().info("Cleared all cached pages.")


@main.command(name="clear-page")
@click.argument("page_id", type=int)
@handle_cli_errors
def clear_page(page_id: int) -> None:
    """Clear one page locally and record it for peers.

    PAGE_ID: Id of the page to clear
    """
    status_logger = get_status_logger()
    service = get_sync_service()

    page = service.pages.resolve(page_id)
    if page is None:
        status_logger.error(f"Page {page_id} not found")
        sys.exit(1)

    with service.request(reconcile=False):
        service.engine.clear_page(page, {})
    status_logger.info(f"Cleared page {page_id}.")


@main.command()
@handle_cli_errors
def config() -> None:
    """Show the complete current configuration."""
    click.echo(get_config_manager().show_config())
