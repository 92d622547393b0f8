"""Provisioner: image gate → ordered provisioning → rollback → outcome."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from aca_deployer.artifacts.image import LocalArtifactPreparer
from aca_deployer.config.models import DeploymentConfig
from aca_deployer.errors import ProvisionError
from aca_deployer.provisioning.base import ResourceRecord, ResourceStore, RunOutcome
from aca_deployer.provisioning.rollback import RollbackHandler
from aca_deployer.provisioning.sequencer import ProvisioningSequencer

logger = structlog.get_logger()


@dataclass
class DeploymentResult:
    outcome: RunOutcome
    records: list[ResourceRecord] = field(default_factory=list)
    endpoint: str | None = None
    error: ProvisionError | None = None

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code

    @property
    def created(self) -> list[ResourceRecord]:
        return [r for r in self.records if r.created_by_this_run]


class Provisioner:
    """Runs one deployment end to end.

    Pre-flight errors (``ConfigError``, ``BuildError``, ``PublishError``)
    propagate untouched because no cloud state exists yet. A
    ``ProvisionError`` from the sequencer is handed to the rollback handler
    and turned into a failed :class:`DeploymentResult`.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        store: ResourceStore,
        preparer: LocalArtifactPreparer | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._preparer = preparer

    def run(self) -> DeploymentResult:
        cfg = self._config
        if self._preparer is not None:
            self._preparer.prepare(cfg.image)

        logger.info(
            "deploy.started",
            resource_group=cfg.resource_group,
            location=cfg.location,
            app=cfg.app_name,
        )
        sequencer = ProvisioningSequencer(cfg, self._store)
        try:
            endpoint = sequencer.run()
        except ProvisionError as exc:
            logger.error(
                "deploy.failed", kind=str(exc.kind), name=exc.name, error=str(exc.cause)
            )
            outcome = RollbackHandler(
                self._store, enabled=cfg.rollback_on_error
            ).handle(exc, sequencer.records)
            if outcome is RunOutcome.FAILED_WITHOUT_ROLLBACK:
                logger.warning(
                    "deploy.manual_cleanup_required", resource_group=cfg.resource_group
                )
            return DeploymentResult(
                outcome=outcome, records=sequencer.records, error=exc
            )

        logger.info("deploy.succeeded", endpoint=endpoint)
        return DeploymentResult(
            outcome=RunOutcome.SUCCEEDED, records=sequencer.records, endpoint=endpoint
        )
