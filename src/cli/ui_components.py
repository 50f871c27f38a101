"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en `setup`, `status` y `doctor`.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.laravel import DEFAULT_MENU_KEY, release_menu
from core.domain.models import SetupReport, StageResult, StageStatus
from core.domain.runtime import ContainerRuntime, runtime_menu

_STATUS_STYLE: dict[StageStatus, tuple[str, str]] = {
    StageStatus.OK: ("✔", "green"),
    StageStatus.SKIPPED: ("•", "dim"),
    StageStatus.WARNING: ("!", "yellow"),
    StageStatus.FAILED: ("✘", "red"),
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("Laravel + FrankenPHP", style="bold cyan")
    subtitle = Text("Docker/Podman local environment setup", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def print_runtime_menu(console: Console, available: Sequence[ContainerRuntime]) -> None:
    names = " and ".join(rt.label() for rt in available)
    console.print(f"Both {names} are available.\n")
    console.print("Which container runtime would you like to use?")
    for key, runtime in runtime_menu():
        console.print(f"  {key}) {runtime.label()}")
    console.print()


def print_release_menu(console: Console) -> None:
    console.print("\n[bold]Select Laravel version:[/bold]")
    for key, release in release_menu():
        suffix = " [dim](default)[/dim]" if key == DEFAULT_MENU_KEY else ""
        console.print(f"  {key}) {release.label()}{suffix}")
    console.print()


def render_stage(console: Console, result: StageResult) -> None:
    """Una línea por etapa terminada; detalles indentados debajo."""

    icon, style = _STATUS_STYLE[result.status]
    if result.message:
        console.print(f"[{style}]{icon}[/{style}] {result.message}")
    for line in result.details:
        console.print(f"   {line}", style="dim", markup=False, highlight=False)


def build_stages_table(report: SetupReport) -> Table:
    table = Table(title="Setup stages")
    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Details", style="dim")
    for result in report.stages:
        icon, style = _STATUS_STYLE[result.status]
        table.add_row(result.name, f"[{style}]{icon} {result.status.value}[/{style}]", result.message)
    return table


def build_summary_panel(
    report: SetupReport,
    *,
    app_url: str,
    phpmyadmin_url: str,
    migrate_command: str,
    reachability: Mapping[str, tuple[bool, str]] | None = None,
) -> Panel:
    """Panel final con URLs y próximos pasos."""

    reachability = reachability or {}
    body = Text()
    body.append("Setup complete!\n\n", style="bold green")
    for label, url in (("Application", app_url), ("phpMyAdmin", phpmyadmin_url)):
        body.append(f"{label}: ", style="bold")
        body.append(url, style="magenta")
        if url in reachability:
            ok, detail = reachability[url]
            body.append(f"  ({detail})", style="green" if ok else "yellow")
        body.append("\n")
    body.append("\nTo run migrations: ")
    body.append(migrate_command, style="cyan")
    if report.warnings:
        body.append(f"\n\n{len(report.warnings)} warning(s) during setup.", style="yellow")
    return Panel(body, title="laravel-fp", border_style="green")


def build_status_table(statuses: Mapping[str, str], *, title: str = "Containers") -> Table:
    table = Table(title=title)
    table.add_column("Container", style="cyan", no_wrap=True)
    table.add_column("Status")
    for name, status in statuses.items():
        style = "green" if status == "running" else "yellow" if status != "absent" else "red"
        table.add_row(name, f"[{style}]{status}[/{style}]")
    return table
