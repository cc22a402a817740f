from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Tuple

import typer
from google.api_core import exceptions as api_exceptions

from spanner_repro.bootstrap import SpannerBootstrapper
from spanner_repro.config import Settings, get_settings
from spanner_repro.ddl import load_ddl_file
from spanner_repro.demo import DemoOptions, load_dml, run_demo
from spanner_repro.domain.models import DatabaseConfig
from spanner_repro.emulator.facade import Emulator
from spanner_repro.errors import ReproError
from spanner_repro.infrastructure.clients import open_database
from spanner_repro.reporter import print_result
from spanner_repro.schema import LIVE_SPANNER_DDL
from spanner_repro.utils.logging import configure_logging

app = typer.Typer(help="Spanner emulator commit-timestamp reproduction harness.")

UPDATE_MODES = ("parameter", "literal")

DDL_FILE_OPTION = typer.Option(
    None,
    "--ddl-file",
    "-f",
    help="Schema file (';'-separated). Defaults to the built-in live schema.",
)


def _setup() -> Settings:
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_logs=settings.log_json,
        client_level=settings.client_log_level,
    )
    return settings


def _resolve_ddl(ddl_file: Optional[Path]) -> Tuple[str, ...]:
    if ddl_file is None:
        return LIVE_SPANNER_DDL
    return tuple(load_ddl_file(ddl_file))


def _bootstrapper(settings: Settings, db_config: DatabaseConfig) -> SpannerBootstrapper:
    return SpannerBootstrapper(
        db_config,
        Emulator.from_docker(settings.emulator_config()),
        operation_timeout=settings.admin_operation_timeout,
        ready_timeout=settings.emulator_ready_timeout,
        reachability_timeout=settings.reachability_timeout,
    )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    db_config = settings.database_config()
    typer.echo(
        f"DB={db_config.database_path} | "
        f"emulator={settings.emulator_image} as {settings.emulator_container_name} "
        f"grpc={settings.emulator_grpc_host} rest={settings.emulator_rest_host} | "
        f"admin_timeout={settings.admin_operation_timeout}s "
        f"update_mode={settings.demo_update_mode}"
    )


@app.command()
def ddl(ddl_file: Optional[Path] = DDL_FILE_OPTION) -> None:
    """
    Print the parsed schema statements, one per block.
    """
    for statement in _resolve_ddl(ddl_file):
        typer.echo(f"{statement};\n")


@app.command()
def up(ddl_file: Optional[Path] = DDL_FILE_OPTION) -> None:
    """
    Start the emulator and create the instance and database; leave it running.
    """
    settings = _setup()
    boot = _bootstrapper(settings, settings.database_config(_resolve_ddl(ddl_file)))
    try:
        endpoint = boot.run()
    except (ReproError, api_exceptions.GoogleAPICallError) as exc:
        typer.echo(f"Can't start spanner emulator: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Emulator ready at {endpoint}: {boot.config.database_path}")


@app.command()
def down() -> None:
    """
    Stop and remove the emulator container (best-effort).
    """
    settings = _setup()
    Emulator.from_docker(settings.emulator_config()).close_quietly()


@app.command()
def run(
    update_mode: Optional[str] = typer.Option(
        None,
        "--update-mode",
        "-m",
        help="How the commit timestamp is requested in the UPDATE: parameter or literal.",
    ),
    insert_commit_timestamp: Optional[bool] = typer.Option(
        None,
        "--insert-commit-timestamp/--insert-fixed-timestamp",
        help="Insert with the commit-timestamp sentinel instead of a fixed time.",
    ),
    ddl_file: Optional[Path] = DDL_FILE_OPTION,
    keep: Optional[bool] = typer.Option(
        None,
        "--keep/--no-keep",
        help="Leave the emulator running afterwards.",
    ),
) -> None:
    """
    Bootstrap the emulator, run the insert/read/update demo and tear down.
    """
    settings = _setup()
    mode = update_mode or settings.demo_update_mode
    if mode not in UPDATE_MODES:
        raise typer.BadParameter(
            f"Unknown update mode '{mode}'. Available: {', '.join(UPDATE_MODES)}"
        )
    options = DemoOptions(
        update_mode=mode,  # type: ignore[arg-type]
        insert_commit_timestamp=(
            settings.demo_insert_commit_timestamp
            if insert_commit_timestamp is None
            else insert_commit_timestamp
        ),
    )
    keep_emulator = settings.keep_emulator if keep is None else keep

    db_config = settings.database_config(_resolve_ddl(ddl_file))
    boot = _bootstrapper(settings, db_config)
    try:
        try:
            endpoint = boot.run()
        except (ReproError, api_exceptions.GoogleAPICallError) as exc:
            typer.echo(f"Can't start spanner emulator: {exc}", err=True)
            raise typer.Exit(code=1)
        result = run_demo(open_database(db_config, endpoint), options)
    finally:
        if not keep_emulator:
            boot.close()

    print_result(result)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("load-dml")
def load_dml_command(
    dml: str = typer.Argument(..., help="One DML statement, e.g. an INSERT seeding rows."),
) -> None:
    """
    Run one DML statement against an already-bootstrapped emulator database.
    """
    settings = _setup()
    endpoint = settings.emulator_grpc_host or settings.emulator_rest_host
    database = open_database(settings.database_config(), endpoint)
    count = load_dml(database, dml)
    typer.echo(f"{count} row(s) affected")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
