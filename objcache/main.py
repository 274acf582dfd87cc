"""Main entry point for the objcache command line.

Sets up the Typer CLI application, performs dependency injection (Composition
Root) in the app callback, defines the CLI commands, and delegates execution
to the CommandHandler. Each invocation is its own process, so values only
carry over between commands through the on-disk store.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from objcache.core.command_handler import CommandHandler
from objcache.infrastructure.cache.caching_service import build_object_cache
from objcache.infrastructure.cli.display import ConsoleDisplay
from objcache.infrastructure.config.settings import ConfigurationError, load_settings
from objcache.infrastructure.monitoring.logger_setup import setup_logging

logger = logging.getLogger(__name__)


def create_dependencies(config_file: Optional[Path] = None, store: Optional[Path] = None, verbose: bool = False) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root.
    """
    settings = load_settings(config_file=config_file, store_path=store)
    setup_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
    )
    logger.debug(f"Configuration loaded. store={settings.store_path}")

    dependencies: Dict[str, Any] = {}
    dependencies['settings'] = settings
    dependencies['ui'] = ConsoleDisplay()
    dependencies['cache_service'] = build_object_cache(settings)
    dependencies['command_handler'] = CommandHandler(
        cache_service=dependencies['cache_service'],
        ui=dependencies['ui'],
    )
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="objcache",
    help="objcache: a disk-persisted, group-scoped object cache with per-entry TTL.",
    add_completion=False,
    no_args_is_help=True,
)

# --- Shared options ---
GroupOption = Annotated[str, typer.Option("--group", "-g", help="Cache group (namespace).")]
TtlOption = Annotated[int, typer.Option("--ttl", "-t", min=0, help="Seconds until expiry; 0 = no expiry.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Parse VALUE as JSON instead of storing it as a string.")]
ByOption = Annotated[int, typer.Option("--by", "-b", help="Offset to apply.")]


def _handler(ctx: typer.Context, command: str) -> CommandHandler:
    dependencies: Dict[str, Any] = ctx.obj
    dependencies['cache_service'].audit.bind_context(f"cli {command}")
    return dependencies['command_handler']


def _finish(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", dir_okay=False, help="YAML configuration file.")] = None,
    store: Annotated[Optional[Path], typer.Option("--store", "-s", file_okay=False, help="Store directory (overrides configuration).")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Loads configuration and builds the cache before any command runs."""
    try:
        ctx.obj = create_dependencies(config_file=config, store=store, verbose=verbose)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)
    ctx.call_on_close(ctx.obj['cache_service'].close)


@app.command()
def get(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key.")],
    group: GroupOption = "default",
    force: Annotated[bool, typer.Option("--force", help="Re-read the on-disk copy.")] = False,
):
    """Print a cached value."""
    _finish(_handler(ctx, "get").handle_get(key, group, force))


@app.command(name="set")
def set_command(ctx: typer.Context, key: str, value: str, group: GroupOption = "default", ttl: TtlOption = 0, as_json: JsonOption = False):
    """Store a value."""
    _finish(_handler(ctx, "set").handle_store("set", key, value, group, ttl, as_json))


@app.command()
def add(ctx: typer.Context, key: str, value: str, group: GroupOption = "default", ttl: TtlOption = 0, as_json: JsonOption = False):
    """Store a value only if the key is not present yet."""
    _finish(_handler(ctx, "add").handle_store("add", key, value, group, ttl, as_json))


@app.command()
def replace(ctx: typer.Context, key: str, value: str, group: GroupOption = "default", ttl: TtlOption = 0, as_json: JsonOption = False):
    """Store a value only if the key is already present."""
    _finish(_handler(ctx, "replace").handle_store("replace", key, value, group, ttl, as_json))


@app.command()
def delete(ctx: typer.Context, key: str, group: GroupOption = "default"):
    """Delete a value."""
    _finish(_handler(ctx, "delete").handle_delete(key, group))


@app.command()
def incr(ctx: typer.Context, key: str, by: ByOption = 1, group: GroupOption = "default"):
    """Increment a numeric value and print the result."""
    _finish(_handler(ctx, "incr").handle_adjust(key, by, group))


@app.command()
def decr(ctx: typer.Context, key: str, by: ByOption = 1, group: GroupOption = "default"):
    """Decrement a numeric value (never below zero) and print the result."""
    _finish(_handler(ctx, "decr").handle_adjust(key, by, group, decrement=True))


@app.command()
def flush(ctx: typer.Context):
    """Remove every cached entry."""
    _finish(_handler(ctx, "flush").handle_flush())


@app.command()
def stats(ctx: typer.Context):
    """Show hit/miss counters and store usage."""
    _finish(_handler(ctx, "stats").handle_stats())


@app.command()
def path(ctx: typer.Context, key: str, group: GroupOption = "default"):
    """Print the file an entry is stored in."""
    _finish(_handler(ctx, "path").handle_path(key, group))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
