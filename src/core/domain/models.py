"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a subprocess ni a la CLI.
- Facilita exportar el resumen de una ejecución a JSON.

Nota:
- Estos modelos describen *qué* ocurrió en el aprovisionamiento, no *cómo*
  se invocaron las herramientas externas.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from core.domain.laravel import LaravelRelease
from core.domain.runtime import ContainerRuntime


class CommandResult(BaseModel):
    """Resultado normalizado de un proceso externo.

    Un código de salida distinto de cero no es una excepción: el llamador
    decide si el fallo es fatal.
    """

    argv: tuple[str, ...] = Field(
        ...,
        description="Comando ejecutado (argv completo).",
    )
    returncode: int = Field(
        ...,
        description="Código de salida; 127 si el ejecutable no existe.",
    )
    stdout: str = Field(default="")
    stderr: str = Field(default="")

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ComposeCommand(BaseModel):
    """Prefijo argv para la orquestación multi-contenedor.

    Ejemplos: ``("docker", "compose")`` o ``("podman-compose",)``.
    """

    model_config = ConfigDict(frozen=True)

    runtime: ContainerRuntime
    argv: tuple[str, ...] = Field(..., min_length=1)

    def build(self, *args: str) -> list[str]:
        return [*self.argv, *args]

    def display(self) -> str:
        """Forma legible para mensajes (``docker compose``)."""

        return " ".join(self.argv)


class RetryPolicy(BaseModel):
    """Política de reintentos para sondeos y comandos frágiles.

    Con ``backoff_factor=1.0`` cada espera es ``interval_seconds``; valores
    mayores producen backoff exponencial acotado por ``max_interval_seconds``.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=30, ge=1, le=1000)
    interval_seconds: float = Field(default=2.0, ge=0)
    backoff_factor: float = Field(default=1.0, ge=1.0)
    max_interval_seconds: float = Field(default=30.0, ge=0)

    def delay_for(self, attempt: int) -> float:
        """Espera tras el intento ``attempt`` (1-based)."""

        delay = self.interval_seconds * (self.backoff_factor ** (attempt - 1))
        return min(delay, max(self.max_interval_seconds, self.interval_seconds))

    def budget_seconds(self) -> float:
        """Tiempo total de espera si todos los intentos fallan."""

        return sum(self.delay_for(n) for n in range(1, self.max_attempts + 1))


class StageStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    WARNING = "warning"
    FAILED = "failed"


class StageResult(BaseModel):
    """Resultado de una etapa del pipeline de aprovisionamiento."""

    name: str = Field(..., min_length=1, max_length=64)
    status: StageStatus
    message: str = Field(default="")
    fatal: bool = Field(
        default=False,
        description="Si es True el pipeline se detiene y la CLI sale con código 1.",
    )
    details: list[str] = Field(
        default_factory=list,
        description="Líneas adicionales (p.ej. cola de logs del contenedor).",
    )

    @classmethod
    def ok(cls, name: str, message: str = "") -> "StageResult":
        return cls(name=name, status=StageStatus.OK, message=message)

    @classmethod
    def skipped(cls, name: str, message: str = "") -> "StageResult":
        return cls(name=name, status=StageStatus.SKIPPED, message=message)

    @classmethod
    def warning(cls, name: str, message: str, details: list[str] | None = None) -> "StageResult":
        return cls(name=name, status=StageStatus.WARNING, message=message, details=details or [])

    @classmethod
    def failed(cls, name: str, message: str, details: list[str] | None = None) -> "StageResult":
        return cls(
            name=name,
            status=StageStatus.FAILED,
            message=message,
            fatal=True,
            details=details or [],
        )


class ContainerNames(BaseModel):
    """Nombres de los contenedores sondeados (db y app)."""

    db: str = Field(default="laravel_db", min_length=1)
    app: str = Field(default="laravel_app", min_length=1)


class SetupReport(BaseModel):
    """Agregado principal: una ejecución del aprovisionamiento.

    Centraliza el estado de la ejecución (etapas + elecciones) para facilitar
    presentación y exportación.
    """

    runtime: ContainerRuntime | None = None
    compose: ComposeCommand | None = None
    release: LaravelRelease | None = None
    containers: ContainerNames = Field(default_factory=ContainerNames)
    stages: list[StageResult] = Field(default_factory=list)
    key_generated: bool = False
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def failed(self) -> bool:
        return any(stage.fatal for stage in self.stages)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @property
    def warnings(self) -> list[StageResult]:
        return [stage for stage in self.stages if stage.status is StageStatus.WARNING]

    def stage(self, name: str) -> StageResult | None:
        for result in self.stages:
            if result.name == name:
                return result
        return None
