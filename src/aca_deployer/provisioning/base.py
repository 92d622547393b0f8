"""Resource kinds, run bookkeeping and the ResourceStore protocol."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable


class ResourceKind(StrEnum):
    """The closed set of cloud resources one deployment manages."""

    RESOURCE_GROUP = "resource_group"
    LOG_WORKSPACE = "log_workspace"
    HOSTING_ENVIRONMENT = "hosting_environment"
    DATABASE_SERVER = "database_server"
    DATABASE = "database"
    CONTAINER_APP = "container_app"


# Each kind may depend on identifiers produced by the kinds before it.
CREATION_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.RESOURCE_GROUP,
    ResourceKind.LOG_WORKSPACE,
    ResourceKind.HOSTING_ENVIRONMENT,
    ResourceKind.DATABASE_SERVER,
    ResourceKind.DATABASE,
    ResourceKind.CONTAINER_APP,
)

# Databases go away with their server.
TEARDOWN_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.CONTAINER_APP,
    ResourceKind.HOSTING_ENVIRONMENT,
    ResourceKind.DATABASE_SERVER,
    ResourceKind.LOG_WORKSPACE,
    ResourceKind.RESOURCE_GROUP,
)


class RunOutcome(StrEnum):
    """Terminal result of a provisioning run."""

    SUCCEEDED = "succeeded"
    FAILED_WITH_ROLLBACK = "failed-with-rollback"
    FAILED_WITHOUT_ROLLBACK = "failed-without-rollback"

    @property
    def exit_code(self) -> int:
        return 0 if self is RunOutcome.SUCCEEDED else 1


@dataclass
class ResourceRecord:
    """One resource touched by a run.

    ``created_by_this_run`` flips to true only right after a successful create
    call and is the only input to rollback decisions.
    """

    kind: ResourceKind
    name: str
    existed_before_run: bool = False
    created_by_this_run: bool = False
    updated_by_this_run: bool = False


@runtime_checkable
class ResourceStore(Protocol):
    """Name-keyed, idempotent store of cloud resources.

    Every operation raises :class:`aca_deployer.errors.CommandError` when the
    underlying call fails.
    """

    def exists(self, kind: ResourceKind, name: str) -> bool:
        """Return True if the resource is present. No side effects."""
        ...

    def create(self, kind: ResourceKind, name: str, spec: Mapping[str, Any]) -> None:
        """Create the resource from *spec*."""
        ...

    def update(self, kind: ResourceKind, name: str, spec: Mapping[str, Any]) -> None:
        """Apply *spec* to an existing resource in place."""
        ...

    def reconcile(
        self, kind: ResourceKind, name: str, spec: Mapping[str, Any]
    ) -> None:
        """Create whichever child objects of the resource are missing.

        Runs after every create, reuse or update of the resource itself.
        """
        ...

    def delete(self, kind: ResourceKind, name: str, *, wait: bool = True) -> None:
        """Delete the resource. With ``wait=False`` only dispatch the delete."""
        ...

    def describe(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        """Return identifiers later steps need (keys, FQDNs)."""
        ...

    def list_apps(self, environment: str) -> list[str]:
        """Names of the container apps still hosted in *environment*."""
        ...
