"""Coarse, best-effort rollback after a failed provisioning run."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from aca_deployer.errors import ProvisionError
from aca_deployer.provisioning.base import (
    ResourceKind,
    ResourceRecord,
    ResourceStore,
    RunOutcome,
)

logger = structlog.get_logger()


class RollbackHandler:
    """Deletes the whole resource group, but only if this run created it.

    Individual resources are never rolled back one by one: an environment
    cannot be deleted while it still hosts apps, so reversing single steps is
    unreliable. The delete is dispatched without waiting and never raises.
    """

    def __init__(self, store: ResourceStore, *, enabled: bool = True) -> None:
        self._store = store
        self._enabled = enabled

    def handle(
        self, error: ProvisionError, records: Sequence[ResourceRecord]
    ) -> RunOutcome:
        group = next(
            (r for r in records if r.kind == ResourceKind.RESOURCE_GROUP), None
        )
        if not self._enabled:
            logger.warning("rollback.disabled", failed_kind=error.kind)
            return RunOutcome.FAILED_WITHOUT_ROLLBACK
        if group is None or not group.created_by_this_run:
            logger.warning(
                "rollback.skipped_group_not_created_by_run",
                failed_kind=error.kind,
                resource_group=group.name if group else None,
            )
            return RunOutcome.FAILED_WITHOUT_ROLLBACK

        logger.warning("rollback.deleting_resource_group", resource_group=group.name)
        try:
            self._store.delete(ResourceKind.RESOURCE_GROUP, group.name, wait=False)
        except Exception as exc:
            logger.error(
                "rollback.delete_failed", resource_group=group.name, error=str(exc)
            )
            return RunOutcome.FAILED_WITHOUT_ROLLBACK
        logger.info("rollback.delete_dispatched", resource_group=group.name)
        return RunOutcome.FAILED_WITH_ROLLBACK
