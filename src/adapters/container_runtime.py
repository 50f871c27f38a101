"""Adaptador de la CLI de Docker/Podman.

Agrupa todas las invocaciones al motor de contenedores: detección, resolución
del comando compose, listado/inspección de contenedores y logs. Ninguna
función imprime; devuelven datos o `CommandResult`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from core.domain.models import CommandResult, ComposeCommand
from core.domain.runtime import ContainerRuntime
from core.exceptions import ComposeNotFoundError
from core.interfaces.runner import CommandRunner

logger = logging.getLogger("laravel_fp.runtime")

RUNNING = "running"


def detect_runtimes(runner: CommandRunner) -> list[ContainerRuntime]:
    """Runtimes whose binary is on PATH, in menu order (podman first)."""

    found = [rt for rt in ContainerRuntime if runner.which(rt.binary)]
    logger.debug("runtimes on PATH: %s", [rt.value for rt in found])
    return found


def resolve_compose_command(runner: CommandRunner, runtime: ContainerRuntime) -> ComposeCommand:
    """Prefer ``<runtime> compose``; fall back to the standalone ``<runtime>-compose``.

    Raises:
        ComposeNotFoundError: neither form is usable.
    """

    probe = runner.run([runtime.binary, "compose", "version"])
    if probe.success:
        return ComposeCommand(runtime=runtime, argv=(runtime.binary, "compose"))

    legacy = runtime.legacy_compose_binary
    if runner.which(legacy):
        return ComposeCommand(runtime=runtime, argv=(legacy,))

    raise ComposeNotFoundError(runtime)


def list_running_names(runner: CommandRunner, runtime: ContainerRuntime) -> list[str] | None:
    """Names from ``ps``; ``None`` when the listing itself failed."""

    result = runner.run([runtime.binary, "ps", "--format", "{{.Names}}"])
    if not result.success:
        return None
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def inspect_status(runner: CommandRunner, runtime: ContainerRuntime, name: str) -> str | None:
    """``.State.Status`` of a container, or ``None`` if inspect fails."""

    result = runner.run([runtime.binary, "inspect", "--format={{.State.Status}}", name])
    if not result.success:
        return None
    return result.stdout.strip() or None


def is_running(runner: CommandRunner, runtime: ContainerRuntime, name: str) -> bool:
    """One readiness check: listed by ``ps`` under exactly this name and inspected as running."""

    names = list_running_names(runner, runtime)
    if not names or name not in names:
        return False
    return inspect_status(runner, runtime, name) == RUNNING


def container_status(runner: CommandRunner, runtime: ContainerRuntime, name: str) -> str:
    """Status for reports: the inspected state, or ``absent``."""

    return inspect_status(runner, runtime, name) or "absent"


def composer_create_project(
    runner: CommandRunner,
    runtime: ContainerRuntime,
    *,
    codesrc: Path,
    package: str,
    image: str = "composer",
    workdir: str = "/var/www/html",
) -> CommandResult:
    """Install a Laravel skeleton into `codesrc` through a throwaway composer container."""

    argv = [
        runtime.binary,
        "run",
        "--rm",
        "-v",
        f"{codesrc.resolve()}:{workdir}",
        "-w",
        workdir,
        image,
        "create-project",
        "--prefer-dist",
        "--no-interaction",
        package,
        ".",
    ]
    return runner.run(argv, capture=False)


def compose_up(runner: CommandRunner, compose: ComposeCommand, *, cwd: Path) -> CommandResult:
    return runner.run(compose.build("up", "-d", "--build"), cwd=cwd, capture=False)


def compose_logs_tail(
    runner: CommandRunner,
    compose: ComposeCommand,
    service: str,
    *,
    cwd: Path,
    lines: int = 20,
) -> list[str]:
    """Last `lines` lines of a service's logs (stdout and stderr merged)."""

    result = runner.run(compose.build("logs", service), cwd=cwd)
    output = (result.stdout + result.stderr).splitlines()
    return output[-lines:]


def artisan_key_generate(
    runner: CommandRunner,
    compose: ComposeCommand,
    service: str,
    *,
    cwd: Path,
) -> CommandResult:
    return runner.run(compose.build("exec", "-T", service, "php", "artisan", "key:generate"), cwd=cwd)


def manual_command(compose: ComposeCommand, service: str, *artisan_args: str) -> str:
    """Command line an operator can paste (``docker compose exec app php artisan ...``)."""

    return " ".join([*compose.argv, "exec", service, "php", "artisan", *artisan_args])
