"""
Where: tests/test_provisioning_pipeline.py
What: Stage ordering, retries and fatal/recoverable outcomes of the setup flow.
Why: The pipeline is the only place where setup decisions are made.
"""

from pathlib import Path

import pytest

from core.domain.laravel import LaravelRelease
from core.domain.models import ComposeCommand, RetryPolicy, StageStatus
from core.domain.runtime import ContainerRuntime
from core.services.provisioning_pipeline import (
    PipelineHooks,
    ProvisioningPipeline,
    SetupRequest,
    generate_key_with_retry,
    seed_env_file,
    wait_for_container,
)

from conftest import FakeRunner


def _pipeline(runner, settings, sleeps, **hooks):
    return ProvisioningPipeline(runner=runner, settings=settings, hooks=PipelineHooks(**hooks), sleep=sleeps)


def _names(report):
    return [(stage.name, stage.status) for stage in report.stages]


def test_happy_path_runs_every_stage(settings, sleeps):
    runner = FakeRunner()

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 0
    assert [name for name, _ in _names(report)] == [
        "runtime",
        "compose",
        "version",
        "codesrc",
        "install",
        "env",
        "up",
        "db",
        "app",
        "key",
    ]
    assert report.runtime is ContainerRuntime.DOCKER
    assert report.release is LaravelRelease.LARAVEL_12
    assert report.key_generated is True
    assert settings.codesrc_dir.is_dir()
    assert runner.calls_matching("docker", "compose", "up", "-d", "--build")
    # settle delays after db and app
    assert sleeps.calls == [5.0, 5.0]


def test_install_skipped_when_marker_present(settings, sleeps):
    settings.codesrc_dir.mkdir()
    (settings.codesrc_dir / "artisan").write_text("#!/usr/bin/env php\n")
    runner = FakeRunner()

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.stage("install").status is StageStatus.SKIPPED
    assert report.stage("codesrc").status is StageStatus.SKIPPED
    assert runner.calls_matching("docker", "run") == []


def test_install_runs_exactly_once_when_marker_absent(settings, sleeps):
    runner = FakeRunner()

    _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="2"))

    installs = runner.calls_matching("docker", "run", "--rm")
    assert len(installs) == 1
    assert "laravel/laravel:8.*" in installs[0]


def test_install_failure_is_fatal(settings, sleeps):
    runner = FakeRunner(install_rc=1)

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 1
    assert report.stages[-1].name == "install"
    assert runner.calls_matching("up") == []


def test_invalid_version_defaults_with_warning(settings, sleeps):
    warnings = []
    runner = FakeRunner()

    report = _pipeline(runner, settings, sleeps, warning=warnings.append).run(SetupRequest(laravel_choice="9"))

    assert report.release is LaravelRelease.LARAVEL_12
    assert warnings == ["Invalid choice. Defaulting to Laravel 12."]
    assert "laravel/laravel:^12.0" in runner.calls_matching("docker", "run")[0]


def test_release_prompt_used_when_no_answer_given(settings, sleeps):
    runner = FakeRunner()

    report = _pipeline(runner, settings, sleeps, choose_release=lambda: "4").run()

    assert report.release is LaravelRelease.LARAVEL_10


def test_env_seeded_from_project_template_first(settings, sleeps):
    codesrc = settings.codesrc_dir
    codesrc.mkdir()
    (settings.project_dir / ".env.example").write_text("APP_NAME=root\n")
    (codesrc / ".env.example").write_text("APP_NAME=codesrc\n")

    source = seed_env_file(settings.project_dir, codesrc)

    assert source == settings.project_dir / ".env.example"
    assert (codesrc / ".env").read_text() == "APP_NAME=root\n"


def test_env_seeded_from_codesrc_template(settings):
    codesrc = settings.codesrc_dir
    codesrc.mkdir()
    (codesrc / ".env.example").write_text("APP_NAME=codesrc\n")

    assert seed_env_file(settings.project_dir, codesrc) == codesrc / ".env.example"
    assert (codesrc / ".env").read_text() == "APP_NAME=codesrc\n"


def test_env_existing_file_is_kept(settings, sleeps):
    codesrc = settings.codesrc_dir
    codesrc.mkdir()
    (codesrc / ".env").write_text("APP_KEY=keep\n")
    (settings.project_dir / ".env.example").write_text("APP_KEY=\n")

    report = _pipeline(FakeRunner(), settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.stage("env").status is StageStatus.SKIPPED
    assert (codesrc / ".env").read_text() == "APP_KEY=keep\n"


def test_env_without_template_is_not_fatal(settings, sleeps):
    report = _pipeline(FakeRunner(), settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.stage("env").status is StageStatus.SKIPPED
    assert report.exit_code == 0


def test_no_runtime_is_fatal_and_starts_nothing(settings, sleeps):
    runner = FakeRunner(binaries=())

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 1
    assert _names(report) == [("runtime", StageStatus.FAILED)]
    assert "Neither Podman nor Docker found" in report.stages[0].message
    assert runner.calls == []


def test_no_compose_is_fatal(settings, sleeps):
    runner = FakeRunner(binaries=("podman",), native_compose=False)

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 1
    assert report.stages[-1].name == "compose"
    assert report.stages[-1].message == "podman-compose not found. Please install it."


def test_both_runtimes_prompt_and_docker_choice_drives_later_steps(settings, sleeps):
    runner = FakeRunner(binaries=("podman", "docker"))
    offered = []

    def choose(options):
        offered.extend(options)
        return "2"

    report = _pipeline(runner, settings, sleeps, choose_runtime=choose).run(SetupRequest(laravel_choice="6"))

    assert offered == [ContainerRuntime.PODMAN, ContainerRuntime.DOCKER]
    assert report.compose.argv == ("docker", "compose")
    assert runner.calls_matching("docker", "compose", "up", "-d", "--build")
    assert not runner.calls_matching("podman", "compose", "up")


def test_both_runtimes_invalid_choice_defaults_to_podman(settings, sleeps):
    runner = FakeRunner(binaries=("podman", "docker"), listed=["laravel_db", "laravel_app"])
    warnings = []

    report = _pipeline(
        runner, settings, sleeps, choose_runtime=lambda options: "x", warning=warnings.append
    ).run(SetupRequest(laravel_choice="6"))

    assert report.runtime is ContainerRuntime.PODMAN
    assert warnings == ["Invalid choice. Defaulting to Podman."]


def test_requested_runtime_skips_prompt(settings, sleeps):
    runner = FakeRunner(binaries=("podman", "docker"))

    def never(options):
        raise AssertionError("prompted")

    report = _pipeline(runner, settings, sleeps, choose_runtime=never).run(
        SetupRequest(runtime=ContainerRuntime.DOCKER, laravel_choice="6")
    )

    assert report.runtime is ContainerRuntime.DOCKER


def test_requested_runtime_not_installed_is_fatal(settings, sleeps):
    runner = FakeRunner(binaries=("docker",))

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(runtime=ContainerRuntime.PODMAN))

    assert report.exit_code == 1
    assert "Podman was requested" in report.stages[0].message


def test_build_failure_is_fatal(settings, sleeps):
    runner = FakeRunner(up_rc=1)

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 1
    assert report.stages[-1].name == "up"
    assert report.stages[-1].message == "docker compose up failed (exit 1)"
    # compose output streams to the terminal, so nothing is carried in details
    assert report.stages[-1].details == []
    assert runner.calls_matching("docker", "compose", "up") == runner.uncaptured[-1:]
    assert runner.inspects == {}


def test_db_timeout_is_a_warning_and_setup_continues(settings, sleeps):
    runner = FakeRunner(ready_after={"laravel_db": None, "laravel_app": 1})

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.stage("db").status is StageStatus.WARNING
    assert report.exit_code == 0
    assert runner.inspects["laravel_db"] == 30
    assert report.stage("key").status is StageStatus.OK


def test_app_timeout_dumps_logs_and_stops(settings, sleeps):
    logs = "\n".join(f"log {n}" for n in range(1, 31))
    runner = FakeRunner(ready_after={"laravel_db": 1, "laravel_app": None}, logs=logs)

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    app = report.stage("app")
    assert report.exit_code == 1
    assert app.status is StageStatus.FAILED
    assert app.details[0] == "log 11"
    assert len(app.details) == 20
    assert report.stage("key") is None
    assert runner.calls_matching("key:generate") == []


def test_poll_attempts_reported_through_hook(settings, sleeps):
    attempts = []
    runner = FakeRunner(ready_after={"laravel_db": 3, "laravel_app": 1})

    _pipeline(runner, settings, sleeps, poll_attempt=lambda *args: attempts.append(args)).run(
        SetupRequest(laravel_choice="6")
    )

    assert attempts == [("laravel_db", 1, 30), ("laravel_db", 2, 30)]


def test_container_names_follow_compose_file(settings, sleeps):
    (settings.project_dir / "docker-compose.yml").write_text(
        "services:\n  app:\n    container_name: blog_app\n  db:\n    container_name: blog_db\n"
    )
    runner = FakeRunner(listed=["blog_db", "blog_app"], ready_after={"blog_db": 1, "blog_app": 1})

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 0
    assert report.containers.app == "blog_app"
    assert set(runner.inspects) == {"blog_db", "blog_app"}


def test_keygen_exhaustion_is_not_fatal(settings, sleeps):
    runner = FakeRunner(keygen=[1, 1, 1, 1, 1])

    report = _pipeline(runner, settings, sleeps).run(SetupRequest(laravel_choice="6"))

    key = report.stage("key")
    assert report.exit_code == 0
    assert key.status is StageStatus.WARNING
    assert key.details[-1] == "docker compose exec app php artisan key:generate"
    assert len(runner.calls_matching("key:generate")) == 5
    # two settle delays, then four 3s pauses between five attempts
    assert sleeps.calls == [5.0, 5.0, 3.0, 3.0, 3.0, 3.0]


def test_keygen_succeeds_after_retries(settings, sleeps):
    runner = FakeRunner(keygen=[1, 1, 0])
    retries = []

    report = _pipeline(runner, settings, sleeps, progress=retries.append).run(SetupRequest(laravel_choice="6"))

    assert report.key_generated is True
    assert len(runner.calls_matching("key:generate")) == 3
    assert "Retry 2/5 - waiting a bit more..." in retries


def test_wait_for_container_is_bounded(sleeps):
    runner = FakeRunner(ready_after={"laravel_app": None})
    policy = RetryPolicy(max_attempts=7, interval_seconds=2.0)

    ok = wait_for_container(runner, ContainerRuntime.DOCKER, "laravel_app", policy, sleep=sleeps)

    assert ok is False
    assert runner.inspects["laravel_app"] == 7
    assert sleeps.calls == [2.0] * 7


def test_wait_for_container_returns_immediately_when_running(sleeps):
    runner = FakeRunner()

    ok = wait_for_container(runner, ContainerRuntime.DOCKER, "laravel_app", RetryPolicy(), sleep=sleeps)

    assert ok is True
    assert sleeps.calls == []


def test_wait_for_container_uses_backoff(sleeps):
    runner = FakeRunner(ready_after={"laravel_app": 4})
    policy = RetryPolicy(max_attempts=10, interval_seconds=1.0, backoff_factor=2.0, max_interval_seconds=3.0)

    assert wait_for_container(runner, ContainerRuntime.DOCKER, "laravel_app", policy, sleep=sleeps) is True
    assert sleeps.calls == [1.0, 2.0, 3.0]


@pytest.mark.parametrize(("codes", "expected"), [([0], (True, 1)), ([1, 0], (True, 2)), ([1] * 5, (False, 5))])
def test_generate_key_with_retry_counts(codes, expected, sleeps):
    runner = FakeRunner(keygen=codes)
    compose = ComposeCommand(runtime=ContainerRuntime.DOCKER, argv=("docker", "compose"))
    policy = RetryPolicy(max_attempts=5, interval_seconds=3.0)

    result = generate_key_with_retry(runner, compose, "app", policy, cwd=Path("."), sleep=sleeps)

    assert result == expected
    assert sleeps.calls == [3.0] * (expected[1] - 1)


def test_stage_before_runtime_resolution_fails_cleanly(settings, sleeps):
    pipeline = _pipeline(FakeRunner(), settings, sleeps)
    pipeline.stages = lambda: [("up", pipeline._compose_up)]

    report = pipeline.run(SetupRequest(laravel_choice="6"))

    assert report.exit_code == 1
    assert [stage.name for stage in report.stages] == ["up"]
    assert report.stage("up").message == "Compose command has not been resolved"
