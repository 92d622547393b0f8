"""Ordered, idempotent create-or-reuse walk over the deployment's resources."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from aca_deployer.config.models import DeploymentConfig
from aca_deployer.errors import CommandError, ProvisionError
from aca_deployer.provisioning import app_settings
from aca_deployer.provisioning.base import ResourceKind, ResourceRecord, ResourceStore

logger = structlog.get_logger()


class ProvisioningSequencer:
    """Walks resource group → workspace → environment → server → database → app.

    Each step checks existence and creates the resource only when absent, so a
    rerun with the same config performs no creates. The app is the one resource
    updated in place when it already exists. The first failing step raises
    :class:`ProvisionError` and nothing after it is attempted.
    """

    def __init__(self, config: DeploymentConfig, store: ResourceStore) -> None:
        self._config = config
        self._store = store
        self.records: list[ResourceRecord] = []

    def check(self, kind: ResourceKind, name: str) -> bool:
        try:
            return self._store.exists(kind, name)
        except CommandError as exc:
            raise ProvisionError(kind, name, exc) from exc

    def ensure(
        self,
        kind: ResourceKind,
        name: str,
        spec: Mapping[str, Any],
        *,
        update_existing: bool = False,
    ) -> ResourceRecord:
        """Create *name* if absent, otherwise reuse (or update) it.

        Child objects (such as a server's firewall rule) are reconciled
        afterwards in every case, so a resource reused from an earlier,
        partially failed run still gets them.
        """
        record = ResourceRecord(kind=kind, name=name)
        self.records.append(record)

        if self.check(kind, name):
            record.existed_before_run = True
            if update_existing:
                logger.info("provision.resource_updating", kind=kind.value, name=name)
                try:
                    self._store.update(kind, name, spec)
                except CommandError as exc:
                    logger.error(
                        "provision.resource_update_failed", kind=kind.value, name=name
                    )
                    raise ProvisionError(kind, name, exc) from exc
                record.updated_by_this_run = True
            else:
                logger.info("provision.resource_reused", kind=kind.value, name=name)
        else:
            logger.info("provision.resource_creating", kind=kind.value, name=name)
            try:
                self._store.create(kind, name, spec)
            except CommandError as exc:
                logger.error(
                    "provision.resource_create_failed", kind=kind.value, name=name
                )
                raise ProvisionError(kind, name, exc) from exc
            record.created_by_this_run = True
            logger.info("provision.resource_created", kind=kind.value, name=name)

        self._reconcile(record, spec)
        return record

    def _reconcile(self, record: ResourceRecord, spec: Mapping[str, Any]) -> None:
        try:
            self._store.reconcile(record.kind, record.name, spec)
        except CommandError as exc:
            logger.error(
                "provision.resource_reconcile_failed",
                kind=record.kind.value,
                name=record.name,
            )
            raise ProvisionError(record.kind, record.name, exc) from exc

    def _describe(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        try:
            return self._store.describe(kind, name)
        except CommandError as exc:
            raise ProvisionError(kind, name, exc) from exc

    def run(self) -> str:
        """Provision every resource in order and return the app endpoint URL."""
        cfg = self._config

        self.ensure(
            ResourceKind.RESOURCE_GROUP,
            cfg.resource_group,
            app_settings.resource_group_spec(cfg),
        )

        self.ensure(
            ResourceKind.LOG_WORKSPACE,
            cfg.workspace_name,
            app_settings.workspace_spec(cfg),
        )
        workspace = self._describe(ResourceKind.LOG_WORKSPACE, cfg.workspace_name)

        self.ensure(
            ResourceKind.HOSTING_ENVIRONMENT,
            cfg.env_name,
            app_settings.environment_spec(
                cfg, workspace["customer_id"], workspace["shared_key"]
            ),
        )

        self.ensure(
            ResourceKind.DATABASE_SERVER,
            cfg.pg_server_name,
            app_settings.database_server_spec(cfg),
        )
        self.ensure(ResourceKind.DATABASE, cfg.database_resource_name, {})
        server = self._describe(ResourceKind.DATABASE_SERVER, cfg.pg_server_name)

        self.ensure(
            ResourceKind.CONTAINER_APP,
            cfg.app_name,
            app_settings.container_app_spec(cfg, server["fqdn"]),
            update_existing=True,
        )
        app = self._describe(ResourceKind.CONTAINER_APP, cfg.app_name)
        return f"https://{app['fqdn']}"

    @property
    def created(self) -> list[ResourceRecord]:
        return [r for r in self.records if r.created_by_this_run]
