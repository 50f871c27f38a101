"""Provisioning orchestration.

The setup flow is an ordered list of stages. Each stage returns a
`StageResult`; the first result flagged ``fatal`` stops the run. Printing and
prompting stay in the CLI layer and reach the pipeline through
`PipelineHooks`, so the same flow runs under tests with fake runners and a
no-op sleep.
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from adapters import container_runtime as rt
from adapters.compose_file import resolve_container_names
from core.config import AppSettings
from core.domain.laravel import LaravelRelease
from core.domain.models import (
    ComposeCommand,
    RetryPolicy,
    SetupReport,
    StageResult,
)
from core.domain.runtime import ContainerRuntime
from core.exceptions import ProvisioningError, RuntimeNotFoundError, StageFailedError
from core.interfaces.runner import CommandRunner

logger = logging.getLogger("laravel_fp.pipeline")

MARKER_FILE = "artisan"
ENV_FILE = ".env"
ENV_TEMPLATE = ".env.example"


@dataclass
class SetupRequest:
    """Answers supplied up front instead of through the interactive menus."""

    runtime: ContainerRuntime | None = None
    laravel_choice: str | None = None


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (prompts, progress, warnings)."""

    progress: Callable[[str], None] | None = None
    warning: Callable[[str], None] | None = None
    choose_runtime: Callable[[Sequence[ContainerRuntime]], str] | None = None
    choose_release: Callable[[], str] | None = None
    stage_done: Callable[[StageResult], None] | None = None
    poll_attempt: Callable[[str, int, int], None] | None = None


Sleep = Callable[[float], None]


def resolve_runtime(
    available: Sequence[ContainerRuntime],
    choice: str | None = None,
) -> tuple[ContainerRuntime, str | None]:
    """Pick the runtime from what is installed.

    One candidate is taken as is. With both, ``choice`` is the menu answer;
    anything but ``1``/``2`` falls back to Podman with a warning.

    Raises:
        RuntimeNotFoundError: nothing installed.
    """

    if not available:
        raise RuntimeNotFoundError()
    if len(available) == 1:
        return available[0], None

    picked = ContainerRuntime.from_menu(choice or "")
    if picked is None:
        default = ContainerRuntime.default()
        return default, f"Invalid choice. Defaulting to {default.label()}."
    return picked, None


def resolve_release(choice: str | None) -> tuple[LaravelRelease, str | None]:
    """Map the version menu answer; ``""`` and ``6`` both mean Laravel 12."""

    release = LaravelRelease.from_menu(choice or "")
    if release is None:
        default = LaravelRelease.default()
        return default, f"Invalid choice. Defaulting to {default.label()}."
    return release, None


def wait_for_container(
    runner: CommandRunner,
    runtime: ContainerRuntime,
    name: str,
    policy: RetryPolicy,
    *,
    sleep: Sleep = time.sleep,
    on_attempt: Callable[[str, int, int], None] | None = None,
) -> bool:
    """Poll until `name` is running; at most ``policy.max_attempts`` checks."""

    for attempt in range(1, policy.max_attempts + 1):
        if rt.is_running(runner, runtime, name):
            logger.info("%s running after %d attempt(s)", name, attempt)
            return True
        if on_attempt:
            on_attempt(name, attempt, policy.max_attempts)
        sleep(policy.delay_for(attempt))

    logger.info("%s not running after %d attempts", name, policy.max_attempts)
    return False


def generate_key_with_retry(
    runner: CommandRunner,
    compose: ComposeCommand,
    service: str,
    policy: RetryPolicy,
    *,
    cwd: Path,
    sleep: Sleep = time.sleep,
    on_retry: Callable[[int, int], None] | None = None,
) -> tuple[bool, int]:
    """Run ``artisan key:generate`` until it succeeds.

    Returns ``(succeeded, attempts_made)``. No pause follows the last attempt.
    """

    for attempt in range(1, policy.max_attempts + 1):
        if rt.artisan_key_generate(runner, compose, service, cwd=cwd).success:
            return True, attempt
        if attempt < policy.max_attempts:
            if on_retry:
                on_retry(attempt, policy.max_attempts)
            sleep(policy.delay_for(attempt))
    return False, policy.max_attempts


def seed_env_file(project_dir: Path, codesrc: Path) -> Path | None:
    """Copy the first existing template to ``codesrc/.env``.

    Returns the template used, or ``None`` when nothing was copied.
    """

    target = codesrc / ENV_FILE
    if target.exists():
        return None
    for candidate in (project_dir / ENV_TEMPLATE, codesrc / ENV_TEMPLATE):
        if candidate.is_file():
            shutil.copyfile(candidate, target)
            return candidate
    return None


@dataclass
class ProvisioningPipeline:
    """Runs the setup stages in order against one project directory."""

    runner: CommandRunner
    settings: AppSettings = field(default_factory=AppSettings)
    hooks: PipelineHooks = field(default_factory=PipelineHooks)
    sleep: Sleep = time.sleep

    def __post_init__(self) -> None:
        self._report = SetupReport()
        self._request = SetupRequest()

    def stages(self) -> list[tuple[str, Callable[[], StageResult]]]:
        return [
            ("runtime", self._detect_runtime),
            ("compose", self._resolve_compose),
            ("version", self._select_release),
            ("codesrc", self._ensure_codesrc),
            ("install", self._install_laravel),
            ("env", self._seed_env),
            ("up", self._compose_up),
            ("db", self._wait_db),
            ("app", self._wait_app),
            ("key", self._generate_key),
        ]

    def run(self, request: SetupRequest | None = None) -> SetupReport:
        self._report = SetupReport()
        self._request = request or SetupRequest()

        for name, stage in self.stages():
            try:
                result = stage()
            except StageFailedError as exc:
                result = StageResult.failed(name, str(exc), exc.details)
            except ProvisioningError as exc:
                result = StageResult.failed(name, str(exc))

            logger.info("stage %s -> %s", name, result.status.value)
            self._report.stages.append(result)
            if self.hooks.stage_done:
                self.hooks.stage_done(result)
            if result.fatal:
                break

        self._report.finished_at = datetime.now(timezone.utc)
        return self._report

    # -- helpers ---------------------------------------------------------

    def _progress(self, message: str) -> None:
        if self.hooks.progress:
            self.hooks.progress(message)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self.hooks.warning:
            self.hooks.warning(message)

    @property
    def _runtime(self) -> ContainerRuntime:
        if self._report.runtime is None:
            raise StageFailedError("runtime", "Container runtime has not been resolved")
        return self._report.runtime

    @property
    def _compose(self) -> ComposeCommand:
        if self._report.compose is None:
            raise StageFailedError("compose", "Compose command has not been resolved")
        return self._report.compose

    # -- stages ----------------------------------------------------------

    def _detect_runtime(self) -> StageResult:
        available = rt.detect_runtimes(self.runner)
        preferred = self._request.runtime or self.settings.runtime

        if preferred is not None and preferred in available:
            runtime, warning = preferred, None
        elif self._request.runtime is not None:
            raise StageFailedError(
                "runtime",
                f"{self._request.runtime.label()} was requested but is not installed.",
            )
        else:
            choice = None
            if len(available) > 1 and self.hooks.choose_runtime:
                choice = self.hooks.choose_runtime(available)
            runtime, warning = resolve_runtime(available, choice)

        self._report.runtime = runtime
        if warning:
            self._warn(warning)
        return StageResult.ok("runtime", f"Using {runtime.value} as container runtime")

    def _resolve_compose(self) -> StageResult:
        self._report.compose = rt.resolve_compose_command(self.runner, self._runtime)
        return StageResult.ok("compose", f"Using {self._compose.display()}")

    def _select_release(self) -> StageResult:
        choice = self._request.laravel_choice
        if choice is None and self.hooks.choose_release:
            choice = self.hooks.choose_release()
        release, warning = resolve_release(choice)
        self._report.release = release
        if warning:
            self._warn(warning)
        return StageResult.ok("version", f"Selected: FrankenPHP (latest), Laravel {release.value}")

    def _ensure_codesrc(self) -> StageResult:
        codesrc = self.settings.codesrc_dir
        if codesrc.is_dir():
            return StageResult.skipped("codesrc", f"{codesrc} already exists")
        self._progress(f"Creating {self.settings.codesrc_dirname} directory...")
        codesrc.mkdir(parents=True, exist_ok=True)
        return StageResult.ok("codesrc", f"Created {codesrc}")

    def _install_laravel(self) -> StageResult:
        codesrc = self.settings.codesrc_dir
        if (codesrc / MARKER_FILE).exists():
            return StageResult.skipped("install", "Laravel already installed")

        release = self._report.release or LaravelRelease.default()
        self._progress(f"Installing Laravel {release.value} in {self.settings.codesrc_dirname} folder...")
        self._progress(f"Using package: {release.package}")
        result = rt.composer_create_project(
            self.runner,
            self._runtime,
            codesrc=codesrc,
            package=release.package,
            image=self.settings.composer_image,
            workdir=self.settings.container_workdir,
        )
        if not result.success:
            raise StageFailedError(
                "install",
                f"composer create-project failed (exit {result.returncode})",
            )
        return StageResult.ok("install", f"Installed {release.package}")

    def _seed_env(self) -> StageResult:
        codesrc = self.settings.codesrc_dir
        if (codesrc / ENV_FILE).exists():
            return StageResult.skipped("env", ".env already present")
        self._progress("Creating .env file...")
        source = seed_env_file(self.settings.project_dir, codesrc)
        if source is None:
            return StageResult.skipped("env", "No .env.example found; continuing without .env")
        return StageResult.ok("env", f"Copied {source.name} from {source.parent}")

    def _compose_up(self) -> StageResult:
        self._report.containers = resolve_container_names(
            self.settings.compose_path,
            app_service=self.settings.app_service,
            db_service=self.settings.db_service,
            defaults=self.settings.default_containers(),
        )
        self._progress("Building and starting containers...")
        result = rt.compose_up(self.runner, self._compose, cwd=self.settings.project_dir)
        if not result.success:
            raise StageFailedError(
                "up",
                f"{self._compose.display()} up failed (exit {result.returncode})",
            )
        return StageResult.ok("up", "Containers built and started")

    def _wait(self, name: str) -> bool:
        self._progress(f"Waiting for {name} to be running...")
        return wait_for_container(
            self.runner,
            self._runtime,
            name,
            self.settings.poll_policy(),
            sleep=self.sleep,
            on_attempt=self.hooks.poll_attempt,
        )

    def _wait_db(self) -> StageResult:
        name = self._report.containers.db
        ready = self._wait(name)
        self.sleep(self.settings.db_settle_seconds)
        if not ready:
            policy = self.settings.poll_policy()
            return StageResult.warning(
                "db",
                f"{name} not running after {policy.max_attempts} attempts; continuing",
            )
        return StageResult.ok("db", f"{name} is running")

    def _wait_app(self) -> StageResult:
        name = self._report.containers.app
        if not self._wait(name):
            policy = self.settings.poll_policy()
            tail = rt.compose_logs_tail(
                self.runner,
                self._compose,
                self.settings.app_service,
                cwd=self.settings.project_dir,
                lines=self.settings.log_tail_lines,
            )
            return StageResult.failed(
                "app",
                f"{name} failed to start after {policy.max_attempts} attempts",
                tail,
            )
        self._progress("Waiting for app to be fully ready...")
        self.sleep(self.settings.app_settle_seconds)
        return StageResult.ok("app", f"{name} is running")

    def _generate_key(self) -> StageResult:
        self._progress("Generating application key...")
        policy = self.settings.keygen_policy()

        def _on_retry(attempt: int, total: int) -> None:
            self._progress(f"Retry {attempt}/{total} - waiting a bit more...")

        ok, attempts = generate_key_with_retry(
            self.runner,
            self._compose,
            self.settings.app_service,
            policy,
            cwd=self.settings.project_dir,
            sleep=self.sleep,
            on_retry=_on_retry,
        )
        self._report.key_generated = ok
        if ok:
            return StageResult.ok("key", "Application key generated successfully")

        manual = rt.manual_command(self._compose, self.settings.app_service, "key:generate")
        return StageResult.warning(
            "key",
            f"Could not generate key automatically after {attempts} attempts.",
            ["You can run it manually:", manual],
        )
