"""Shared fixtures: config factories and an in-memory ResourceStore."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pytest

from aca_deployer.config.loader import DEPLOYMENT_ENV_VARS
from aca_deployer.config.models import DeploymentConfig
from aca_deployer.errors import CommandError
from aca_deployer.provisioning.base import ResourceKind

Key = tuple[ResourceKind, str]


class InMemoryStore:
    """Records every call; resources live in a set keyed by (kind, name)."""

    def __init__(
        self,
        *,
        existing: Iterable[Key] = (),
        fail_on_exists: Iterable[ResourceKind] = (),
        fail_on_create: Iterable[ResourceKind] = (),
        fail_on_update: Iterable[ResourceKind] = (),
        fail_on_reconcile: Iterable[ResourceKind] = (),
        fail_on_delete: Iterable[ResourceKind] = (),
        apps: Mapping[str, list[str]] | None = None,
    ) -> None:
        self.resources: set[Key] = set(existing)
        self.fail_on_exists = set(fail_on_exists)
        self.fail_on_create = set(fail_on_create)
        self.fail_on_update = set(fail_on_update)
        self.fail_on_reconcile = set(fail_on_reconcile)
        self.fail_on_delete = set(fail_on_delete)
        self.apps = dict(apps or {})
        self.calls: list[tuple[str, ResourceKind, str]] = []
        self.specs: dict[Key, dict[str, Any]] = {}
        self.waits: dict[Key, bool] = {}

    def _maybe_fail(self, kinds: set[ResourceKind], kind: ResourceKind) -> None:
        if kind in kinds:
            raise CommandError(["az", kind.value], 1, "simulated failure")

    def exists(self, kind: ResourceKind, name: str) -> bool:
        self.calls.append(("exists", kind, name))
        self._maybe_fail(self.fail_on_exists, kind)
        return (kind, name) in self.resources

    def create(self, kind: ResourceKind, name: str, spec: Mapping[str, Any]) -> None:
        self.calls.append(("create", kind, name))
        self._maybe_fail(self.fail_on_create, kind)
        self.resources.add((kind, name))
        self.specs[(kind, name)] = dict(spec)

    def update(self, kind: ResourceKind, name: str, spec: Mapping[str, Any]) -> None:
        self.calls.append(("update", kind, name))
        self._maybe_fail(self.fail_on_update, kind)
        self.specs[(kind, name)] = dict(spec)

    def reconcile(
        self, kind: ResourceKind, name: str, spec: Mapping[str, Any]
    ) -> None:
        self.calls.append(("reconcile", kind, name))
        self._maybe_fail(self.fail_on_reconcile, kind)

    def delete(self, kind: ResourceKind, name: str, *, wait: bool = True) -> None:
        self.calls.append(("delete", kind, name))
        self.waits[(kind, name)] = wait
        self._maybe_fail(self.fail_on_delete, kind)
        self.resources.discard((kind, name))

    def describe(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        self.calls.append(("describe", kind, name))
        if kind == ResourceKind.LOG_WORKSPACE:
            return {"customer_id": "ws-customer-id", "shared_key": "ws-shared-key"}
        if kind == ResourceKind.DATABASE_SERVER:
            return {"fqdn": f"{name}.postgres.database.azure.com"}
        if kind == ResourceKind.CONTAINER_APP:
            return {"fqdn": f"{name}.happyhill.eastus.azurecontainerapps.io"}
        return {}

    def list_apps(self, environment: str) -> list[str]:
        self.calls.append(("list_apps", ResourceKind.HOSTING_ENVIRONMENT, environment))
        return list(self.apps.get(environment, []))

    def verbs(self, verb: str) -> list[ResourceKind]:
        """Kinds touched by *verb*, in call order."""
        return [kind for v, kind, _ in self.calls if v == verb]


def deployment_config(**overrides: Any) -> DeploymentConfig:
    values: dict[str, Any] = {
        "pg_password": "Str0ng!Pass",
        "encryption_key": "0123456789abcdef0123456789abcdef",
        "basic_auth_password": "letmein",
    }
    values.update(overrides)
    return DeploymentConfig(**values)


def all_resources(config: DeploymentConfig) -> set[Key]:
    return {
        (ResourceKind.RESOURCE_GROUP, config.resource_group),
        (ResourceKind.LOG_WORKSPACE, config.workspace_name),
        (ResourceKind.HOSTING_ENVIRONMENT, config.env_name),
        (ResourceKind.DATABASE_SERVER, config.pg_server_name),
        (ResourceKind.DATABASE, config.database_resource_name),
        (ResourceKind.CONTAINER_APP, config.app_name),
    }


@pytest.fixture
def make_store() -> Callable[..., InMemoryStore]:
    return InMemoryStore


@pytest.fixture
def make_config() -> Callable[..., DeploymentConfig]:
    return deployment_config


@pytest.fixture
def config() -> DeploymentConfig:
    return deployment_config()


@pytest.fixture
def existing_resources() -> Callable[[DeploymentConfig], set[Key]]:
    return all_resources


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every variable the config loader reads."""
    for names in DEPLOYMENT_ENV_VARS.values():
        for name in names:
            monkeypatch.delenv(name, raising=False)
    return monkeypatch
