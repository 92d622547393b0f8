"""Best-effort teardown in reverse creation order."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from aca_deployer.config.models import TeardownConfig
from aca_deployer.errors import CommandError, TeardownStepError
from aca_deployer.provisioning.base import ResourceKind, ResourceStore

logger = structlog.get_logger()

Confirm = Callable[[str], bool]


@dataclass
class TeardownReport:
    """What a teardown run did. Success means every step was attempted."""

    deleted: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    failed: list[TeardownStepError] = field(default_factory=list)
    nothing_to_do: bool = False
    aborted: bool = False

    @property
    def clean(self) -> bool:
        return not self.failed


class TeardownSequencer:
    """Deletes app → environment → database server → workspace → resource group.

    Missing resources are skipped, and a failed delete is recorded and logged
    without stopping the remaining steps. The environment is left alone while
    other apps still run in it. Deleting the resource group needs its own
    confirmation.
    """

    def __init__(
        self,
        config: TeardownConfig,
        store: ResourceStore,
        confirm: Confirm,
    ) -> None:
        self._config = config
        self._store = store
        self._confirm = confirm
        self.report = TeardownReport()

    def run(self) -> TeardownReport:
        cfg = self._config
        logger.info("teardown.started", resource_group=cfg.resource_group)

        group_present = self._exists(ResourceKind.RESOURCE_GROUP, cfg.resource_group)
        if group_present is None:
            self.report.aborted = True
            return self.report
        if not group_present:
            logger.warning(
                "teardown.nothing_to_do", resource_group=cfg.resource_group
            )
            self.report.nothing_to_do = True
            return self.report

        if not self._confirm(
            f"This will permanently delete the deployment's resources in "
            f"resource group '{cfg.resource_group}'. Continue?"
        ):
            logger.warning("teardown.aborted_by_user")
            self.report.aborted = True
            return self.report

        self._delete(ResourceKind.CONTAINER_APP, cfg.app_name)
        self._delete_environment(cfg.env_name)
        self._delete(ResourceKind.DATABASE_SERVER, cfg.pg_server_name, wait=False)
        self._delete(ResourceKind.LOG_WORKSPACE, cfg.workspace_name)

        if self._confirm(
            f"Delete the entire resource group '{cfg.resource_group}'? "
            "This removes any remaining resources inside."
        ):
            self._delete(ResourceKind.RESOURCE_GROUP, cfg.resource_group, wait=False)
            logger.info(
                "teardown.resource_group_delete_dispatched",
                resource_group=cfg.resource_group,
            )
        else:
            self._skip(ResourceKind.RESOURCE_GROUP, cfg.resource_group)
            logger.warning(
                "teardown.resource_group_kept",
                resource_group=cfg.resource_group,
                hint="manual cleanup may be required for residual resources",
            )

        logger.info(
            "teardown.finished",
            deleted=len(self.report.deleted),
            skipped=len(self.report.skipped),
            failed=len(self.report.failed),
        )
        return self.report

    def _exists(self, kind: ResourceKind, name: str) -> bool | None:
        """Existence check that records a failure instead of raising."""
        try:
            return self._store.exists(kind, name)
        except CommandError as exc:
            self._fail(kind, name, exc)
            return None

    def _skip(self, kind: ResourceKind, name: str) -> None:
        self.report.skipped.append((kind.value, name))

    def _fail(self, kind: ResourceKind, name: str, exc: Exception) -> None:
        error = TeardownStepError(kind.value, name, exc)
        self.report.failed.append(error)
        logger.error("teardown.step_failed", kind=kind.value, name=name, error=str(exc))

    def _delete(self, kind: ResourceKind, name: str, *, wait: bool = True) -> None:
        present = self._exists(kind, name)
        if present is None:
            return
        if not present:
            logger.warning("teardown.resource_missing", kind=kind.value, name=name)
            self._skip(kind, name)
            return
        logger.info("teardown.resource_deleting", kind=kind.value, name=name)
        try:
            self._store.delete(kind, name, wait=wait)
        except CommandError as exc:
            self._fail(kind, name, exc)
            return
        self.report.deleted.append((kind.value, name))

    def _delete_environment(self, name: str) -> None:
        kind = ResourceKind.HOSTING_ENVIRONMENT
        present = self._exists(kind, name)
        if present is None:
            return
        if not present:
            logger.warning("teardown.resource_missing", kind=kind.value, name=name)
            self._skip(kind, name)
            return
        try:
            remaining = self._store.list_apps(name)
        except CommandError as exc:
            self._fail(kind, name, exc)
            return
        if remaining:
            logger.warning(
                "teardown.environment_not_empty", name=name, apps=remaining
            )
            self._skip(kind, name)
            return
        logger.info("teardown.resource_deleting", kind=kind.value, name=name)
        try:
            self._store.delete(kind, name)
        except CommandError as exc:
            self._fail(kind, name, exc)
            return
        self.report.deleted.append((kind.value, name))
