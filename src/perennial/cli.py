"""Command-line interface for Perennial."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import PerennialConfig, create_sample_config, load_config
from .error_handling import ConfigurationError, PerennialError, handle_error
from .plugins.registry import PluginRegistry
from .renewal import Renewal
from .storage.renewals import RenewalStore

console = Console()


def setup_logging(
    *,
    verbose: bool = False,
    config: PerennialConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    # Clean up existing handlers first to prevent resource leaks
    cleanup_logging()

    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    if config and config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / "perennial.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


def build_store(config: PerennialConfig) -> RenewalStore:
    """Create a store with the plugin schemas installed on this system."""
    registry = PluginRegistry()
    registry.load_entry_points(config.plugin_entry_point_group)
    return RenewalStore(config, registry)


def _store(ctx: click.Context) -> RenewalStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = build_store(ctx.obj["config"])
    return ctx.obj["store"]


def format_renewal_table(renewals: list[Renewal]) -> Table:
    """Format renewals into a table."""
    table = Table()
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Due")
    table.add_column("Renewed", justify="right")
    table.add_column("Last result")

    for renewal in renewals:
        last = renewal.last_result
        if last is None:
            outcome = "-"
        elif last.success:
            outcome = "[green]ok[/green]"
        else:
            outcome = f"[red]{last.error_message or 'failed'}[/red]"

        table.add_row(
            renewal.id,
            renewal.display_name,
            renewal.date.strftime("%Y-%m-%d %H:%M"),
            str(renewal.success_count),
            outcome,
        )

    return table


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """Perennial - manage stored renewals."""
    try:
        ctx.ensure_object(dict)
        if "config" not in ctx.obj:
            ctx.obj["config"] = load_config(config)
        ctx.obj["verbose"] = verbose

        setup_logging(verbose=verbose, config=ctx.obj["config"])
    except (OSError, ValueError) as e:
        config_error = ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config,
            solution="Run 'perennial config show' to check your configuration file",
        )
        console.print(f"[red]Configuration Error:[/red] {config_error}")
        sys.exit(1)


@cli.group("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Configuration management commands."""


@config_cmd.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: PerennialConfig = ctx.obj["config"]

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Renewal Directory", str(config.config_dir))
    table.add_row("Log Directory", str(config.log_dir))
    table.add_row("Encrypt Secrets", "yes" if config.encrypt_secrets else "no")
    table.add_row(
        "Secret Key",
        "configured" if config.secret_key else str(config.resolved_key_file),
    )
    table.add_row("Previous Keys", str(len(config.previous_secret_keys)))
    table.add_row("Plugin Entry Points", config.plugin_entry_point_group)

    console.print(table)


@config_cmd.command("init")
@click.option(
    "--path",
    "-p",
    type=click.Path(path_type=Path),
    default=Path.home() / ".config" / "perennial" / "config.toml",
    help="Path for the configuration file",
)
def config_init(path: Path) -> None:
    """Create a sample configuration file."""
    try:
        create_sample_config(path)
        console.print(f"[green]Created sample configuration at {path}[/green]")
    except OSError as e:
        console.print(f"[red]Error creating configuration: {e}[/red]")
        sys.exit(1)


@cli.command("list")
@click.option("--id", "renewal_id", help="Only the renewal with this id")
@click.option("--friendly-name", help="Only renewals with this name")
@click.pass_context
def list_renewals(
    ctx: click.Context,
    renewal_id: str | None,
    friendly_name: str | None,
) -> None:
    """List stored renewals by due date."""
    renewals = _store(ctx).list(id=renewal_id, friendly_name=friendly_name)

    if not renewals:
        console.print("No renewals found")
        return

    console.print(format_renewal_table(renewals))


@cli.command()
@click.argument("renewal_id")
@click.pass_context
def cancel(ctx: click.Context, renewal_id: str) -> None:
    """Cancel a renewal and delete its file."""
    store = _store(ctx)
    renewal = store.get(renewal_id)
    if renewal is None:
        console.print(f"[red]Renewal {renewal_id} not found[/red]")
        sys.exit(1)

    try:
        store.cancel(renewal)
    except (OSError, PerennialError) as e:
        handle_error(e)
        sys.exit(1)
    console.print(f"[green]Cancelled {renewal.display_name}[/green]")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Cancel every renewal."""
    store = _store(ctx)
    count = len(store.list())

    if not yes and not click.confirm(f"Are you sure you want to cancel all {count} renewals?"):
        return

    try:
        store.clear()
    except (OSError, PerennialError) as e:
        handle_error(e)
        sys.exit(1)
    console.print(f"[green]Cancelled {count} renewals[/green]")


@cli.command()
@click.pass_context
def encrypt(ctx: click.Context) -> None:
    """Rewrite all renewals with the current secret settings."""
    store = _store(ctx)

    try:
        store.encrypt()
    except (OSError, PerennialError) as e:
        handle_error(e)
        sys.exit(1)
    console.print(f"[green]Rewrote {len(store.list())} renewals[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
