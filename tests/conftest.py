"""
Where: tests/conftest.py
What: Fake container CLI shared by pipeline, adapter and CLI tests.
Why: Exercise every setup path without Docker/Podman installed.
"""

from __future__ import annotations

import os
from collections import Counter
from pathlib import Path
from typing import Iterable, Sequence

import pytest

from core.config import AppSettings
from core.domain.models import CommandResult


class FakeRunner:
    """Answers container CLI calls from a scripted scenario.

    - ``binaries``: executables visible on PATH.
    - ``native_compose``: whether ``<rt> compose version`` succeeds.
    - ``listed``: names returned by ``ps``.
    - ``ready_after``: name -> number of inspect calls before it reports
      ``running`` (``None`` = never).
    - ``keygen``: return codes consumed by successive key:generate calls
      (0 once exhausted).
    """

    def __init__(
        self,
        *,
        binaries: Iterable[str] = ("docker",),
        native_compose: bool = True,
        listed: Iterable[str] = ("laravel_db", "laravel_app"),
        ready_after: dict[str, int | None] | None = None,
        keygen: Sequence[int] = (0,),
        up_rc: int = 0,
        install_rc: int = 0,
        logs: str = "",
        ps_rc: int = 0,
    ) -> None:
        self.binaries = set(binaries)
        self.native_compose = native_compose
        self.listed = list(listed)
        self.ready_after = ready_after if ready_after is not None else {"laravel_db": 1, "laravel_app": 1}
        self.keygen = list(keygen)
        self.up_rc = up_rc
        self.install_rc = install_rc
        self.logs = logs
        self.ps_rc = ps_rc
        self.calls: list[tuple[str, ...]] = []
        self.uncaptured: list[tuple[str, ...]] = []
        self.inspects: Counter[str] = Counter()

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.binaries else None

    def calls_matching(self, *fragment: str) -> list[tuple[str, ...]]:
        size = len(fragment)
        return [
            call
            for call in self.calls
            if any(call[i : i + size] == fragment for i in range(len(call) - size + 1))
        ]

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        args = tuple(argv)
        self.calls.append(args)
        if not capture:
            self.uncaptured.append(args)

        def result(rc: int = 0, stdout: str = "", stderr: str = "") -> CommandResult:
            # Uncaptured output goes to the terminal, never into the result.
            if not capture:
                stdout = stderr = ""
            return CommandResult(argv=args, returncode=rc, stdout=stdout, stderr=stderr)

        if args[0] not in self.binaries:
            return result(127, stderr=f"{args[0]}: not found")

        if args[1:] == ("compose", "version"):
            return result(0 if self.native_compose else 1)
        if args[1:3] == ("ps", "--format"):
            return result(self.ps_rc, stdout="\n".join(self.listed) + "\n")
        if args[1] == "inspect":
            name = args[-1]
            self.inspects[name] += 1
            threshold = self.ready_after.get(name)
            running = threshold is not None and self.inspects[name] >= threshold
            return result(0, stdout="running\n" if running else "created\n")
        if args[1] == "run":
            return result(self.install_rc, stderr="composer error" if self.install_rc else "")
        if "up" in args:
            return result(self.up_rc, stderr="build failed" if self.up_rc else "")
        if "logs" in args:
            return result(0, stdout=self.logs)
        if "key:generate" in args:
            rc = self.keygen.pop(0) if self.keygen else 0
            return result(rc)
        return result(0)


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(_env_file=None, project_dir=tmp_path)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path_factory):
    for key in list(os.environ):
        if key.startswith("LARAVEL_FP_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
