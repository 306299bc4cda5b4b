"""
rmstate-copy - Copy ResourceManager recovery state between state stores.

Usage:
    rmstate-copy SOURCE DEST [OPTIONS]

SOURCE and DEST are store nicknames: fs, zk, mem or null. The destination
must be empty unless --allow-non-empty is given.

Examples:
    rmstate-copy fs zk --fs-root /var/lib/rmstore --redis-url redis://rm-meta:6379/0
    rmstate-copy zk fs --config /etc/rmstate.toml --best-effort
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rmstate.config import StateStoreConfig, StoreKind
from rmstate.exceptions import ConfigError, StateStoreError, WriteError
from rmstate.migration import FailurePolicy, MigrationResult, StateCopier, copy_state_stores

app = typer.Typer(
    name="rmstate-copy",
    help="Copy ResourceManager recovery state from one state store to another.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("rmstate.cli")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
USAGE = "Usage: rmstate-copy SOURCE DEST [OPTIONS]"
USAGE_ERROR_EXIT_CODE = 2


def _configure_logging(log_level: str) -> None:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}", param_hint="--log-level")
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")


def _load_config(
    config_file: Path | None,
    fs_root: str | None,
    redis_url: str | None,
) -> StateStoreConfig:
    base = StateStoreConfig.from_toml(config_file) if config_file else StateStoreConfig()
    return StateStoreConfig.from_env(base=base).with_overrides(
        fs_root=fs_root,
        redis_url=redis_url,
    )


def _print_result(result: MigrationResult) -> None:
    table = Table(title=f"Copied {result.source_store} -> {result.destination_store}")
    table.add_column("Entity", style="cyan")
    table.add_column("Count", justify="right")

    table.add_row("Applications", str(result.applications))
    table.add_row("Attempts", str(result.attempts))
    table.add_row("Delegation keys", str(result.delegation_keys))
    table.add_row("Delegation tokens", str(result.delegation_tokens))
    table.add_row("DT sequence number", str(result.dt_sequence_number))
    table.add_row("AM-RM token state", "yes" if result.amrm_token_state_copied else "no")
    table.add_row("Failed applications", str(len(result.failed_applications)))

    console.print(table)

    for failure in result.failed_applications:
        err_console.print(
            f"[red]Failed application {failure.application_id}[/red] "
            f"({failure.entity} {failure.entity_id}): {escape(failure.error_message)}",
            soft_wrap=True,
        )
    for error in result.close_errors:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(str(error))}", soft_wrap=True)


def _print_error(error: StateStoreError) -> None:
    detail = f"phase={error.phase}"
    if isinstance(error, WriteError):
        detail += f" entity={error.entity} id={error.entity_id}"
    err_console.print(f"[red]Error:[/red] {escape(str(error))} ({detail})", soft_wrap=True)


@app.command()
def copy(
    source: str = typer.Argument(..., help="Source store: fs, zk, mem or null"),
    dest: str = typer.Argument(..., help="Destination store: fs, zk, mem or null"),
    config_file: Path | None = typer.Option(
        None, "--config", "-c", help="TOML configuration file (rmstate table)"
    ),
    fs_root: str | None = typer.Option(None, "--fs-root", help="Filesystem store root"),
    redis_url: str | None = typer.Option(None, "--redis-url", help="Node-tree store Redis URL"),
    best_effort: bool = typer.Option(
        False, "--best-effort", help="Skip applications that fail to copy instead of aborting"
    ),
    allow_non_empty: bool = typer.Option(
        False, "--allow-non-empty", help="Overwrite a destination that already holds state"
    ),
    log_level: str = typer.Option("INFO", "--log-level", "-l", help="Logging level"),
) -> None:
    """Copy all recovery state from SOURCE to DEST."""
    _configure_logging(log_level)

    try:
        source_kind = StoreKind.from_nickname(source)
        dest_kind = StoreKind.from_nickname(dest)
        if source_kind == dest_kind:
            raise ConfigError(f"Source and destination stores are same: {source}")
        config = _load_config(config_file, fs_root, redis_url)
    except ConfigError as e:
        _print_error(e)
        raise typer.Exit(1) from e

    copier = StateCopier(
        policy=FailurePolicy.BEST_EFFORT if best_effort else FailurePolicy.FAIL_FAST,
        require_empty_destination=not allow_non_empty,
        enable_tracing=config.enable_tracing,
    )

    try:
        result = asyncio.run(copy_state_stores(source_kind, dest_kind, config, copier=copier))
    except StateStoreError as e:
        logger.error("Migration from %s to %s failed: %s", source, dest, e.to_dict())
        _print_error(e)
        raise typer.Exit(1) from e

    _print_result(result)
    if not result.success:
        raise typer.Exit(1)


def main(argv: list[str] | None = None) -> int:
    """
    Run the command line tool and return its exit code.

    Usage errors (missing or extra arguments, unknown options, bad option
    values) exit 1 after printing the usage line.
    """
    command = typer.main.get_command(app)
    try:
        command.main(args=argv, prog_name="rmstate-copy", standalone_mode=True)
    except SystemExit as e:
        code = e.code
    else:
        code = 0

    if code == USAGE_ERROR_EXIT_CODE:
        err_console.print(USAGE, soft_wrap=True)
        return 1
    if code is None:
        return 0
    return code if isinstance(code, int) else 1


if __name__ == "__main__":
    raise SystemExit(main())
