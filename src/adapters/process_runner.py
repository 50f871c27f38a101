"""Wrapper de subprocess.

Por qué un wrapper:
- Estandariza captura de salida, timeouts y logging de cada comando externo.
- Facilita testeo: el pipeline recibe un `CommandRunner` y los tests inyectan un fake.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Sequence

from core.domain.models import CommandResult

logger = logging.getLogger("laravel_fp.process")


class SubprocessRunner:
    """`CommandRunner` backed by `subprocess.run`.

    With ``capture=False`` the child inherits the terminal, so long-running
    commands (composer, ``compose up --build``) stream their output live.
    """

    def __init__(self, *, default_timeout: float | None = None) -> None:
        self._default_timeout = default_timeout

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        args = tuple(str(part) for part in argv)
        logger.debug("exec: %s (cwd=%s)", shlex.join(args), cwd or ".")
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                capture_output=capture,
                text=True,
                timeout=timeout if timeout is not None else self._default_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            logger.debug("timeout after %ss: %s", exc.timeout, args[0])
            return CommandResult(
                argv=args,
                returncode=-1,
                stderr=f"Command timed out after {exc.timeout} seconds",
            )
        except OSError as exc:
            logger.debug("cannot execute %s: %s", args[0], exc)
            return CommandResult(argv=args, returncode=127, stderr=str(exc))

        result = CommandResult(
            argv=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.success:
            logger.debug("exit %s: %s", result.returncode, result.stderr.strip())
        return result

    def which(self, name: str) -> str | None:
        return shutil.which(name)
