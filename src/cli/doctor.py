"""Doctor command for environment diagnostics."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters import container_runtime as rt
from adapters.compose_file import load_compose_services, resolve_container_names
from adapters.http_client import check_urls
from adapters.process_runner import SubprocessRunner
from core.config import AppSettings, write_user_env_vars
from core.domain.runtime import ContainerRuntime
from core.exceptions import ComposeNotFoundError
from core.interfaces.runner import CommandRunner
from core.services.provisioning_pipeline import ENV_FILE, MARKER_FILE

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def collect_checks(
    settings: AppSettings,
    runner: CommandRunner,
    *,
    check_http: bool = True,
) -> list[tuple[str, str, str]]:
    """Rows of (check, status, details). Read-only: nothing is started or written."""

    rows: list[tuple[str, str, str]] = []

    available = rt.detect_runtimes(runner)
    for candidate in ContainerRuntime:
        found = candidate in available
        rows.append((candidate.label(), "OK" if found else "MISSING", runner.which(candidate.binary) or "-"))

    runtime: ContainerRuntime | None = None
    if available:
        runtime = settings.runtime if settings.runtime in available else available[0]
        try:
            compose = rt.resolve_compose_command(runner, runtime)
            rows.append(("Compose", "OK", compose.display()))
        except ComposeNotFoundError as exc:
            rows.append(("Compose", "FAIL", str(exc)))
    else:
        rows.append(("Compose", "FAIL", "No container runtime installed"))

    compose_path = settings.compose_path
    if compose_path.is_file():
        services = load_compose_services(compose_path)
        rows.append(("Compose file", "OK", f"{compose_path.name}: {', '.join(sorted(services)) or 'no services'}"))
    else:
        rows.append(("Compose file", "FAIL", f"{compose_path} not found"))

    codesrc = settings.codesrc_dir
    rows.append(
        (
            "Laravel",
            "OK" if (codesrc / MARKER_FILE).exists() else "NOT INSTALLED",
            str(codesrc),
        )
    )
    rows.append(("App .env", "OK" if (codesrc / ENV_FILE).exists() else "MISSING", str(codesrc / ENV_FILE)))

    names = resolve_container_names(
        compose_path,
        app_service=settings.app_service,
        db_service=settings.db_service,
        defaults=settings.default_containers(),
    )
    for name in (names.db, names.app):
        if runtime is None:
            rows.append((name, "UNKNOWN", "No container runtime installed"))
            continue
        status = rt.container_status(runner, runtime, name)
        rows.append((name, "OK" if status == rt.RUNNING else "DOWN", status))

    if check_http:
        results = check_urls([settings.app_url, settings.phpmyadmin_url], settings)
        for url, (ok, detail) in results.items():
            rows.append((url, "OK" if ok else "FAIL", detail))

    return rows


@app.command()
def run(
    project_dir: Path | None = typer.Option(None, "--project-dir", file_okay=False),
    check_http: bool = typer.Option(True, "--check-http/--no-check-http"),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    if project_dir is not None:
        settings = settings.model_copy(update={"project_dir": project_dir.resolve()})

    table = Table(title="laravel-fp doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    rows = collect_checks(settings, SubprocessRunner(), check_http=check_http)
    for row in rows:
        table.add_row(*row)
    _console.print(table)

    if not any(status == "OK" for check, status, _ in rows if check in ("Podman", "Docker")):
        _console.print("\n[yellow]Note:[/yellow] install Podman or Docker before running setup.")


@app.command()
def configure() -> None:
    """Interactive defaults (stored in the user config .env)."""

    runtime = typer.prompt(
        "Preferred runtime when both are installed (podman/docker, empty = ask)",
        default="",
        show_default=False,
    ).strip().lower()
    if runtime and runtime not in {item.value for item in ContainerRuntime}:
        raise typer.BadParameter("runtime must be podman or docker")

    attempts = typer.prompt("Readiness poll attempts", default=30, type=int)
    interval = typer.prompt("Seconds between poll attempts", default=2.0, type=float)
    backoff = typer.prompt("Backoff factor (1 = fixed interval)", default=1.0, type=float)
    if attempts < 1 or interval < 0 or backoff < 1:
        raise typer.BadParameter("attempts >= 1, interval >= 0 and backoff >= 1 are required")

    env_path = write_user_env_vars(
        {
            "LARAVEL_FP_RUNTIME": runtime,
            "LARAVEL_FP_POLL_MAX_ATTEMPTS": str(attempts),
            "LARAVEL_FP_POLL_INTERVAL_SECONDS": str(interval),
            "LARAVEL_FP_POLL_BACKOFF_FACTOR": str(backoff),
        }
    )

    _console.print(f"[green]Saved defaults to:[/green] {env_path}")
