"""Lectura del compose file.

Los nombres de contenedor sondeados salen de ``container_name`` de los
servicios db/app; si el archivo o la clave no existen se usan los defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from core.domain.models import ContainerNames

logger = logging.getLogger("laravel_fp.compose_file")


def load_compose_services(path: Path) -> dict[str, dict[str, Any]]:
    """Mapping of service name to its definition; empty when unreadable."""

    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.warning("cannot parse %s: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        return {}
    services = data.get("services")
    if not isinstance(services, dict):
        return {}
    return {str(k): v for k, v in services.items() if isinstance(v, dict)}


def _container_name(services: dict[str, dict[str, Any]], service: str) -> str | None:
    value = services.get(service, {}).get("container_name")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def resolve_container_names(
    path: Path,
    *,
    app_service: str = "app",
    db_service: str = "db",
    defaults: ContainerNames | None = None,
) -> ContainerNames:
    defaults = defaults or ContainerNames()
    services = load_compose_services(path)
    names = ContainerNames(
        db=_container_name(services, db_service) or defaults.db,
        app=_container_name(services, app_service) or defaults.app,
    )
    logger.debug("container names from %s: %s", path, names.model_dump())
    return names
