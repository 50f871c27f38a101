"""Provisioning error types.

Detection helpers raise these; the pipeline turns them into fatal stage
results and the CLI maps fatal results to exit code 1.
"""

from __future__ import annotations

from core.domain.runtime import ContainerRuntime


class ProvisioningError(Exception):
    """Base exception for the provisioner."""


class RuntimeNotFoundError(ProvisioningError):
    """Neither Podman nor Docker is installed."""

    def __init__(self) -> None:
        super().__init__("Neither Podman nor Docker found. Please install one of them.")


class ComposeNotFoundError(ProvisioningError):
    """No compose subcommand or standalone binary for the chosen runtime."""

    def __init__(self, runtime: ContainerRuntime):
        self.runtime = runtime
        super().__init__(f"{runtime.legacy_compose_binary} not found. Please install it.")


class StageFailedError(ProvisioningError):
    """Raised by a stage callable to abort the pipeline with a message."""

    def __init__(self, stage: str, message: str, details: list[str] | None = None):
        self.stage = stage
        self.details = details or []
        super().__init__(message)
