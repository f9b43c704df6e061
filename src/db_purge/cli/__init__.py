"""CLI module for planning and running foreign-key-safe table purges.

Clears every table of a schema except the kept ones, in an order that never
violates a foreign key, inside one transaction.

Usage:
    DB_PROFILE=local db-purge plan
    db-purge --profile local --keep users,formas_pago plan
    db-purge --profile local run
    db-purge --profile local run --confirm
    db-purge --database-url postgresql://... run --dry-run
    db-purge profiles

Commands:
    profiles  - List available profiles
    plan      - Show the deletion plan without touching data
    run       - Show the plan, confirm, and clear the tables

Exit codes:
    0 - success, nothing to do, or aborted by the user
    1 - configuration or connection failure
    2 - a kept table shares a foreign-key cycle with a cleared table
    3 - the purge failed and was rolled back
"""

import argparse
import asyncio
import logging
import os
import sys

import psycopg
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from db_purge.config.loader import load_db_config
from db_purge.config.models import DatabaseConfig
from db_purge.factory import (
    ProfileNotFoundError,
    get_active_profile_name,
    get_executor,
    load_deletion_plan,
    resolve_database_url,
    resolve_keep_tables,
)
from db_purge.purge.executor import apply_plan
from db_purge.purge.models import DeletionPlan, GroupStep
from db_purge.purge.planner import ConflictError

console = Console()

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_CONFLICT = 2
EXIT_EXECUTION_ERROR = 3

# Answers accepted at the confirmation prompt
_CONFIRM_ANSWERS = {"y", "yes", "s", "si"}


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    """Route log records through rich; DEBUG with --verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _parse_keep(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [t.strip() for t in value.split(",") if t.strip()]


def _load_config(args: argparse.Namespace) -> DatabaseConfig | None:
    """Load db.toml; optional when a URL comes from --database-url or DATABASE_URL."""
    try:
        return load_db_config()
    except FileNotFoundError:
        if getattr(args, "database_url", None):
            return None
        env_url = os.environ.get(f"{getattr(args, 'env_prefix', '')}DATABASE_URL")
        if env_url and getattr(args, "profile", None) is None:
            return None
        raise


def _resolve_target(args: argparse.Namespace) -> tuple[str, list[str], str]:
    """Resolve (database_url, keep_tables, schema_name) from args and config.

    Raises:
        FileNotFoundError: If db.toml is needed but missing.
        ProfileNotFoundError: If no profile or URL is configured.
        KeyError: If the profile is unknown.
        ValueError: If the profile's provider is unsupported.
    """
    env_prefix = getattr(args, "env_prefix", "")
    config = _load_config(args)

    url = resolve_database_url(
        profile_name=getattr(args, "profile", None),
        database_url=getattr(args, "database_url", None),
        env_prefix=env_prefix,
        config=config,
    )
    keep = resolve_keep_tables(
        _parse_keep(getattr(args, "keep", None)),
        env_prefix=env_prefix,
        config=config,
    )
    schema_name = getattr(args, "schema", None)
    if not schema_name:
        schema_name = config.purge.schema_name if config is not None else "public"

    return url, keep, schema_name


def _print_conflict(error: ConflictError) -> None:
    console.print()
    console.print(f"[bold red]x[/bold red] {error}")
    console.print(f"  Component: [yellow]{', '.join(error.component)}[/yellow]")
    console.print(
        "[dim]Cannot continue automatically without risking kept tables. "
        "Adjust the keep list or the schema.[/dim]"
    )


def _print_plan(plan: DeletionPlan, schema_name: str) -> None:
    console.print()
    title = "Deletion Plan" if plan.acyclic else "Deletion Plan (by component)"
    plan_table = Table(title=title, show_header=True, header_style="bold")
    plan_table.add_column("#", justify="right", style="dim")
    plan_table.add_column("Mode")
    plan_table.add_column("Tables")

    for i, step in enumerate(plan.steps, start=1):
        if isinstance(step, GroupStep):
            mode = "[bold yellow]GROUP[/bold yellow]"
        elif step.self_referencing:
            mode = "single [dim](self-referencing)[/dim]"
        else:
            mode = "single"
        plan_table.add_row(
            str(i),
            mode,
            ", ".join(f"{schema_name}.{t}" for t in step.tables),
        )

    console.print(plan_table)

    if not plan.acyclic:
        console.print(
            "[yellow]Cycles found among cleared tables; each cycle is "
            "cleared as one group.[/yellow]"
        )

    if plan.kept_tables:
        console.print(f"\nKept tables: [green]{', '.join(plan.kept_tables)}[/green]")

    if plan.protected_references:
        console.print(
            "\n[yellow]Warning:[/yellow] kept tables reference cleared tables "
            "(the purge fails if a kept row still points at a cleared row):"
        )
        for source, target in plan.protected_references:
            console.print(f"  - {source} -> {target}")


async def _build_plan(
    args: argparse.Namespace,
) -> tuple[int, DeletionPlan | None, str | None, str]:
    """Resolve the target and plan the purge.

    Returns:
        Tuple of (exit_code, plan, database_url, schema_name).  ``plan`` is
        None when the exit code is not ``EXIT_OK``.
    """
    try:
        url, keep, schema_name = _resolve_target(args)
    except ProfileNotFoundError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return EXIT_CONFIG_ERROR, None, None, ""
    except (FileNotFoundError, KeyError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return EXIT_CONFIG_ERROR, None, None, ""

    console.print(
        f"Introspecting schema [bold cyan]{schema_name}[/bold cyan]...",
        style="dim",
    )

    try:
        _, plan = await load_deletion_plan(url, keep, schema_name)
    except ConflictError as e:
        _print_conflict(e)
        return EXIT_CONFLICT, None, url, schema_name
    except (psycopg.Error, OSError) as e:
        console.print(
            f"\n[bold red]Error:[/bold red] Connection failed "
            f"({type(e).__name__}): {e}"
        )
        return EXIT_CONFIG_ERROR, None, url, schema_name

    return EXIT_OK, plan, url, schema_name


def _ask_confirmation() -> bool:
    answer = console.input(
        "\nContinue and clear these tables? [bold](yes/no)[/bold] "
    )
    return answer.strip().lower() in _CONFIRM_ANSWERS


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command.

    Args:
        args: Parsed arguments with profile, database_url, keep, schema,
            and env_prefix.

    Returns:
        0 on success, 1 on configuration failure, 2 on conflict.
    """
    code, plan, _, schema_name = await _build_plan(args)
    if plan is None:
        return code

    if not plan.has_steps:
        console.print()
        console.print("[green]Nothing to clear[/green] - every table is kept.")
        return EXIT_OK

    _print_plan(plan, schema_name)
    return EXIT_OK


async def _async_run(args: argparse.Namespace) -> int:
    """Async implementation for run command.

    Prints the plan, asks for confirmation unless ``--confirm`` was passed,
    and applies the plan in one transaction.

    Args:
        args: Parsed arguments with profile, database_url, keep, schema,
            env_prefix, dry_run, and confirm.

    Returns:
        0 on success or abort, 1 on configuration or connection failure, 2 on conflict,
        3 if the purge failed and was rolled back.
    """
    code, plan, url, schema_name = await _build_plan(args)
    if plan is None:
        return code

    if not plan.has_steps:
        console.print()
        console.print("[green]Nothing to clear[/green] - every table is kept.")
        return EXIT_OK

    _print_plan(plan, schema_name)

    if args.dry_run:
        console.print()
        console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
        return EXIT_OK

    if not args.confirm and not _ask_confirmation():
        console.print("Aborted by user.")
        return EXIT_OK

    console.print()
    console.print("Clearing tables...", style="dim")

    executor = await get_executor(database_url=url, schema_name=schema_name)
    try:
        # Fail before the transaction opens, so exit 3 always means a rollback
        try:
            healthy = await executor.test_connection()
        except (SQLAlchemyError, OSError) as e:
            console.print(
                f"\n[bold red]Error:[/bold red] Connection failed "
                f"({type(e).__name__}): {e}"
            )
            return EXIT_CONFIG_ERROR
        if not healthy:
            console.print("\n[bold red]Error:[/bold red] Connection check returned no result")
            return EXIT_CONFIG_ERROR

        result = await apply_plan(executor, plan, dry_run=False, confirm=True)
    finally:
        await executor.close()

    if result.success:
        console.print(
            f"[bold green]v[/bold green] Purge complete: "
            f"{result.tables_cleared} tables cleared."
        )
        return EXIT_OK

    console.print(
        f"[bold red]x[/bold red] Purge failed at "
        f"[bold]{result.failed_step or 'transaction'}[/bold]: {result.error}"
    )
    console.print("[dim]All changes were rolled back.[/dim]")
    return EXIT_EXECUTION_ERROR


# ============================================================================
# Sync command wrappers (cmd_profiles reads local files only)
# ============================================================================


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the deletion plan.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Exit code.
    """
    return asyncio.run(_async_plan(args))


def cmd_run(args: argparse.Namespace) -> int:
    """Plan, confirm, and clear the tables.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Exit code.
    """
    return asyncio.run(_async_run(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config()
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return EXIT_CONFIG_ERROR

    try:
        current = get_active_profile_name(env_prefix=getattr(args, "env_prefix", ""))
    except ProfileNotFoundError:
        current = None

    table = Table(
        title="Database Profiles", show_header=True, header_style="bold"
    )
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if config.purge.keep_tables:
        console.print(
            f"\nKept tables ([dim]{config.purge.schema_name}[/dim]): "
            f"{', '.join(config.purge.keep_tables)}"
        )

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return EXIT_OK


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-purge",
        description="Clear every table except the kept ones, in foreign-key-safe order",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE and APP_DB_PURGE_KEEP)"
        ),
    )
    parser.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile from db.toml (default: from DB_PROFILE)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Connect to this URL instead of a db.toml profile",
    )
    parser.add_argument(
        "--schema",
        default=None,
        help="Schema to purge (default: [purge].schema or public)",
    )
    parser.add_argument(
        "--keep",
        default=None,
        help="Comma-separated tables to keep (overrides DB_PURGE_KEEP and [purge].keep)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # plan command
    p_plan = subparsers.add_parser(
        "plan",
        help="Show the deletion plan without touching data",
    )
    p_plan.set_defaults(func=cmd_plan)

    # run command
    p_run = subparsers.add_parser(
        "run",
        help="Clear every non-kept table in one transaction",
    )
    p_run.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be cleared without making changes",
    )
    p_run.add_argument(
        "--confirm",
        action="store_true",
        help="Skip the interactive confirmation prompt",
    )
    p_run.set_defaults(func=cmd_run)

    args = parser.parse_args()
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
