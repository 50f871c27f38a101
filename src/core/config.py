"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que pipeline y adaptadores lean tiempos de espera, nombres y URLs
  de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import ContainerNames, RetryPolicy
from core.domain.runtime import ContainerRuntime


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "laravel-fp"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "laravel-fp"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "laravel-fp"
    return Path.home() / ".config" / "laravel-fp"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# laravel-fp user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.

    El `.env` del proyecto no se lee aquí: ese archivo pertenece a compose.
    """

    model_config = SettingsConfigDict(
        env_prefix="LARAVEL_FP_",
        extra="ignore",
        case_sensitive=False,
        env_ignore_empty=True,
        env_file=str(get_user_env_file()),
        env_file_encoding="utf-8",
    )

    project_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directorio con el compose file y `codesrc/`.",
    )
    codesrc_dirname: str = Field(default="codesrc", min_length=1)
    compose_file: str = Field(default="docker-compose.yml", min_length=1)
    runtime: ContainerRuntime | None = Field(
        default=None,
        description="Runtime preferido; evita el menú cuando ambos están instalados.",
    )

    app_service: str = Field(default="app", min_length=1)
    db_service: str = Field(default="db", min_length=1)
    default_app_container: str = Field(default="laravel_app", min_length=1)
    default_db_container: str = Field(default="laravel_db", min_length=1)

    composer_image: str = Field(default="composer", min_length=1)
    container_workdir: str = Field(default="/var/www/html", min_length=1)

    poll_max_attempts: int = Field(default=30, ge=1, le=1000)
    poll_interval_seconds: float = Field(default=2.0, ge=0)
    poll_backoff_factor: float = Field(
        default=1.0,
        ge=1.0,
        description="1.0 = intervalo fijo; >1 = backoff exponencial.",
    )
    poll_max_interval_seconds: float = Field(default=30.0, ge=0)

    db_settle_seconds: float = Field(default=5.0, ge=0)
    app_settle_seconds: float = Field(default=5.0, ge=0)

    keygen_max_attempts: int = Field(default=5, ge=1, le=100)
    keygen_retry_seconds: float = Field(default=3.0, ge=0)

    log_tail_lines: int = Field(default=20, ge=1, le=10_000)

    app_url: str = Field(default="http://localhost:8080", min_length=8)
    phpmyadmin_url: str = Field(default="http://localhost:8081", min_length=8)
    http_timeout_seconds: float = Field(default=5.0, gt=0)

    log_level: str = Field(default="WARNING", min_length=1)

    @property
    def codesrc_dir(self) -> Path:
        return self.project_dir / self.codesrc_dirname

    @property
    def compose_path(self) -> Path:
        return self.project_dir / self.compose_file

    def poll_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.poll_max_attempts,
            interval_seconds=self.poll_interval_seconds,
            backoff_factor=self.poll_backoff_factor,
            max_interval_seconds=self.poll_max_interval_seconds,
        )

    def keygen_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.keygen_max_attempts,
            interval_seconds=self.keygen_retry_seconds,
        )

    def default_containers(self) -> ContainerNames:
        return ContainerNames(db=self.default_db_container, app=self.default_app_container)
