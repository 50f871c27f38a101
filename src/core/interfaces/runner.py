"""Contratos para ejecutar procesos externos.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que el pipeline sea testeable sin lanzar Docker/Podman reales.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import CommandResult


@runtime_checkable
class CommandRunner(Protocol):
    """Contrato mínimo para lanzar un comando y esperar su resultado.

    Reglas de diseño:
    - Bloqueante: el pipeline es secuencial.
    - Nunca lanza por código de salida distinto de cero; devuelve `CommandResult`.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        capture: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        """Ejecuta `argv` y devuelve el resultado normalizado."""

        ...

    def which(self, name: str) -> str | None:
        """Ruta del ejecutable en PATH, o None."""

        ...
