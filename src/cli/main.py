"""CLI principal (Typer).

Sin subcomando ejecuta el setup interactivo; `setup` acepta respuestas por
flags para uso en scripts. Toda la lógica vive en
`core.services.provisioning_pipeline`; aquí solo hay prompts y render.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import typer
from rich.console import Console

from adapters import container_runtime as rt
from adapters.compose_file import resolve_container_names
from adapters.http_client import check_urls
from adapters.json_exporter import export_report_json
from adapters.process_runner import SubprocessRunner
from cli import doctor
from cli.ui_components import (
    build_stages_table,
    build_status_table,
    build_summary_panel,
    print_banner,
    print_release_menu,
    print_runtime_menu,
    render_stage,
)
from core.config import AppSettings
from core.domain.laravel import DEFAULT_MENU_KEY
from core.domain.runtime import ContainerRuntime
from core.logging_config import setup_logging
from core.services.provisioning_pipeline import (
    PipelineHooks,
    ProvisioningPipeline,
    SetupRequest,
)

app = typer.Typer(
    name="laravel-fp",
    help="Provision a Laravel + FrankenPHP development stack with Docker or Podman.",
    add_completion=False,
)
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def _settings(project_dir: Path | None) -> AppSettings:
    settings = AppSettings()
    if project_dir is not None:
        settings = settings.model_copy(update={"project_dir": project_dir.resolve()})
    return settings


def _build_hooks(console: Console) -> PipelineHooks:
    def choose_runtime(available: Sequence[ContainerRuntime]) -> str:
        print_runtime_menu(console, available)
        return typer.prompt("Enter your choice (1 or 2)", default="", show_default=False)

    def choose_release() -> str:
        print_release_menu(console)
        return typer.prompt(f"Enter your choice (1-6) [default: {DEFAULT_MENU_KEY}]", default="", show_default=False)

    return PipelineHooks(
        progress=lambda message: console.print(f"[cyan]»[/cyan] {message}"),
        warning=lambda message: console.print(f"[yellow]Warning:[/yellow] {message}"),
        choose_runtime=choose_runtime,
        choose_release=choose_release,
        stage_done=lambda result: None if result.fatal else render_stage(console, result),
        poll_attempt=lambda name, attempt, total: console.print(
            f"   Attempt {attempt}/{total} - waiting...", style="dim"
        ),
    )


def run_setup(
    *,
    runtime: ContainerRuntime | None = None,
    laravel: str | None = None,
    project_dir: Path | None = None,
    report_json: Path | None = None,
    check_http: bool = True,
    console: Console | None = None,
    err_console: Console | None = None,
    pipeline: ProvisioningPipeline | None = None,
) -> int:
    """Run the full setup and render it. Returns the process exit code."""

    console = console or _console
    err_console = err_console or _err_console
    settings = pipeline.settings if pipeline else _settings(project_dir)
    pipeline = pipeline or ProvisioningPipeline(runner=SubprocessRunner(), settings=settings)
    pipeline.hooks = _build_hooks(console)

    print_banner(console)
    try:
        report = pipeline.run(SetupRequest(runtime=runtime, laravel_choice=laravel))
    except (KeyboardInterrupt, typer.Abort):
        err_console.print("\n[yellow]Interrupted.[/yellow] Containers already started are left running.")
        return 130

    if report_json is not None:
        path = export_report_json(report=report, output_path=report_json)
        console.print(f"[dim]Report written to {path}[/dim]")

    if report.failed:
        failed = report.stages[-1]
        err_console.print(f"\n[red]Error:[/red] {failed.message}")
        for line in failed.details:
            err_console.print(f"   {line}", style="dim", markup=False, highlight=False)
        if failed.name == "app":
            err_console.print("Please check the logs above and fix any issues.")
        return report.exit_code

    console.print()
    console.print(build_stages_table(report))

    reachability = None
    if check_http:
        reachability = check_urls([settings.app_url, settings.phpmyadmin_url], settings)

    migrate_command = ""
    if report.compose is not None:
        migrate_command = rt.manual_command(report.compose, settings.app_service, "migrate")
    console.print(
        build_summary_panel(
            report,
            app_url=settings.app_url,
            phpmyadmin_url=settings.phpmyadmin_url,
            migrate_command=migrate_command,
            reachability=reachability,
        )
    )
    return report.exit_code


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Diagnostic log level (DEBUG, INFO, WARNING...). Default: LARAVEL_FP_LOG_LEVEL or WARNING.",
    ),
) -> None:
    """Without a subcommand, run the interactive setup."""

    try:
        setup_logging(log_level or AppSettings().log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

    if ctx.invoked_subcommand is None:
        raise typer.Exit(code=run_setup())


@app.command()
def setup(
    runtime: ContainerRuntime | None = typer.Option(
        None,
        "--runtime",
        case_sensitive=False,
        help="Container runtime to use instead of asking.",
    ),
    laravel: str | None = typer.Option(
        None,
        "--laravel",
        help="Laravel menu choice (1=7 ... 6=12) instead of asking.",
    ),
    project_dir: Path | None = typer.Option(
        None,
        "--project-dir",
        file_okay=False,
        help="Directory holding the compose file (default: current directory).",
    ),
    report_json: Path | None = typer.Option(
        None,
        "--report-json",
        dir_okay=False,
        help="Write the stage results as JSON.",
    ),
    check_http: bool = typer.Option(True, "--check-http/--no-check-http", help="Probe the URLs at the end."),
) -> None:
    """Install Laravel, start the containers and generate the app key."""

    code = run_setup(
        runtime=runtime,
        laravel=laravel,
        project_dir=project_dir,
        report_json=report_json,
        check_http=check_http,
    )
    raise typer.Exit(code=code)


@app.command()
def status(
    project_dir: Path | None = typer.Option(None, "--project-dir", file_okay=False),
) -> None:
    """Show whether the db and app containers are running."""

    settings = _settings(project_dir)
    runner = SubprocessRunner()
    available = rt.detect_runtimes(runner)
    if not available:
        _err_console.print("[red]Error:[/red] Neither Podman nor Docker found. Please install one of them.")
        raise typer.Exit(code=1)

    runtime = settings.runtime if settings.runtime in available else available[0]
    names = resolve_container_names(
        settings.compose_path,
        app_service=settings.app_service,
        db_service=settings.db_service,
        defaults=settings.default_containers(),
    )
    statuses = {name: rt.container_status(runner, runtime, name) for name in (names.db, names.app)}
    _console.print(build_status_table(statuses, title=f"Containers ({runtime.value})"))
    if any(value != "running" for value in statuses.values()):
        raise typer.Exit(code=1)


def run() -> None:
    app()
