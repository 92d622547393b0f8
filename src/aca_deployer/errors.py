"""Error taxonomy for deployment and teardown runs."""

from __future__ import annotations

from collections.abc import Sequence


class DeployError(Exception):
    """Base class for every fatal error surfaced by the CLI."""

    exit_code = 1


class ConfigError(DeployError, ValueError):
    """Bad or missing input, detected before any external call."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class DependencyMissingError(DeployError):
    """A required external tool (az, docker, node) is not installed."""


class BuildError(DeployError):
    """The local image could not be built."""


class PublishError(DeployError):
    """The built image could not be pushed to its registry."""


class CommandError(Exception):
    """An external command exited non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(
            f"Command '{' '.join(self.argv)}' exited with {returncode}{detail}"
        )


class ProvisionError(DeployError):
    """Creating or updating one resource failed; the sequence halts."""

    def __init__(self, kind: str, name: str, cause: Exception) -> None:
        super().__init__(f"Failed to provision {kind} '{name}': {cause}")
        self.kind = kind
        self.name = name
        self.cause = cause


class TeardownStepError(DeployError):
    """Deleting one resource or artifact failed. Logged, never fatal."""

    def __init__(self, target: str, name: str, cause: Exception) -> None:
        super().__init__(f"Failed to delete {target} '{name}': {cause}")
        self.target = target
        self.name = name
        self.cause = cause
