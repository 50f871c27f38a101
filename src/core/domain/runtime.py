"""Container runtimes supported by the provisioner.

This module centralizes the runtime options so the CLI, the adapters and the
pipeline share a single source of truth for names, labels and menu keys.
"""

from __future__ import annotations

from enum import Enum


class ContainerRuntime(str, Enum):
    """Container engines that can host the Laravel stack."""

    PODMAN = "podman"
    DOCKER = "docker"

    @classmethod
    def default(cls) -> "ContainerRuntime":
        """Runtime used when the operator's menu choice is not recognised."""

        return cls.PODMAN

    @classmethod
    def from_menu(cls, choice: str) -> "ContainerRuntime | None":
        """Map a numeric menu answer (``1``/``2``) to a runtime."""

        return _MENU.get(choice.strip())

    def label(self) -> str:
        """Human readable label for prompts and logging."""

        return "Podman" if self is ContainerRuntime.PODMAN else "Docker"

    @property
    def binary(self) -> str:
        return self.value

    @property
    def legacy_compose_binary(self) -> str:
        """Standalone compose executable (``podman-compose`` / ``docker-compose``)."""

        return f"{self.value}-compose"


_MENU: dict[str, ContainerRuntime] = {
    "1": ContainerRuntime.PODMAN,
    "2": ContainerRuntime.DOCKER,
}


def runtime_menu() -> list[tuple[str, ContainerRuntime]]:
    """Menu entries in display order."""

    return sorted(_MENU.items())
