"""Azure implementations of the six resource kinds behind one ResourceStore."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from aca_deployer.azure.cli import AzureCLI
from aca_deployer.provisioning.base import ResourceKind

Argv = list[str]


def _pairs(values: Mapping[str, Any]) -> list[str]:
    return [f"{k}={v}" for k, v in values.items()]


class AzureResource:
    """Builds the ``az`` argument vectors for one resource kind.

    Subclasses return argument lists (without the leading ``az``); the store
    runs them. ``create``/``update`` may need several commands. Child objects
    that must exist alongside the resource are listed by ``dependents`` as
    (show, create) pairs and reconciled on every run.
    """

    kind: ClassVar[ResourceKind]
    supports_no_wait: ClassVar[bool] = False

    def __init__(self, resource_group: str) -> None:
        self.resource_group = resource_group

    def show(self, name: str) -> Argv:
        raise NotImplementedError

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        raise NotImplementedError

    def update(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        msg = f"{self.kind.value} does not support in-place update"
        raise NotImplementedError(msg)

    def delete(self, name: str) -> Argv:
        raise NotImplementedError

    def dependents(
        self, name: str, spec: Mapping[str, Any]
    ) -> list[tuple[Argv, Argv]]:
        return []

    def describe(self, cli: AzureCLI, name: str) -> dict[str, Any]:
        return {}


class ResourceGroup(AzureResource):
    kind = ResourceKind.RESOURCE_GROUP
    supports_no_wait = True

    def show(self, name: str) -> Argv:
        return ["group", "show", "--name", name]

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        return [["group", "create", "--name", name, "--location", spec["location"]]]

    def delete(self, name: str) -> Argv:
        return ["group", "delete", "--name", name, "--yes"]


class LogWorkspace(AzureResource):
    kind = ResourceKind.LOG_WORKSPACE

    def _base(self, verb: str, name: str) -> Argv:
        return [
            "monitor", "log-analytics", "workspace", verb,
            "-g", self.resource_group, "-n", name,
        ]  # fmt: skip

    def show(self, name: str) -> Argv:
        return self._base("show", name)

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        return [[*self._base("create", name), "--location", spec["location"]]]

    def delete(self, name: str) -> Argv:
        return [*self._base("delete", name), "--yes"]

    def describe(self, cli: AzureCLI, name: str) -> dict[str, Any]:
        customer_id = cli.run(*self._base("show", name), "--query", "customerId")
        shared_key = cli.run(
            *self._base("get-shared-keys", name), "--query", "primarySharedKey"
        )
        return {"customer_id": customer_id, "shared_key": shared_key}


class ContainerAppEnvironment(AzureResource):
    kind = ResourceKind.HOSTING_ENVIRONMENT

    def show(self, name: str) -> Argv:
        return ["containerapp", "env", "show", "-g", self.resource_group, "-n", name]

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        return [
            [
                "containerapp", "env", "create",
                "-g", self.resource_group, "-n", name,
                "--location", spec["location"],
                "--logs-workspace-id", spec["workspace_id"],
                "--logs-workspace-key", spec["workspace_key"],
            ]
        ]  # fmt: skip

    def delete(self, name: str) -> Argv:
        return [
            "containerapp", "env", "delete",
            "-g", self.resource_group, "-n", name, "--yes",
        ]  # fmt: skip


class PostgresFlexibleServer(AzureResource):
    kind = ResourceKind.DATABASE_SERVER
    supports_no_wait = True

    def show(self, name: str) -> Argv:
        return [
            "postgres", "flexible-server", "show",
            "-g", self.resource_group, "-n", name,
        ]  # fmt: skip

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        return [
            [
                "postgres", "flexible-server", "create",
                "--name", name,
                "--resource-group", self.resource_group,
                "--location", spec["location"],
                "--admin-user", spec["admin_user"],
                "--admin-password", spec["admin_password"],
                "--sku-name", spec["sku"],
                "--tier", spec["tier"],
                "--version", str(spec["version"]),
                "--storage-size", str(spec["storage_size_gb"]),
                "--yes",
            ]
        ]  # fmt: skip

    def dependents(
        self, name: str, spec: Mapping[str, Any]
    ) -> list[tuple[Argv, Argv]]:
        # Lets Container Apps (and other Azure services) reach the server.
        rule = spec["firewall_rule"]
        base = ["postgres", "flexible-server", "firewall-rule"]
        scope = [
            "--resource-group", self.resource_group,
            "--name", name,
            "--rule-name", rule["name"],
        ]  # fmt: skip
        show = [*base, "show", *scope]
        create = [
            *base, "create", *scope,
            "--start-ip-address", rule["start_ip"],
            "--end-ip-address", rule["end_ip"],
        ]  # fmt: skip
        return [(show, create)]

    def delete(self, name: str) -> Argv:
        return [
            "postgres", "flexible-server", "delete",
            "-g", self.resource_group, "-n", name, "--yes",
        ]  # fmt: skip

    def describe(self, cli: AzureCLI, name: str) -> dict[str, Any]:
        fqdn = cli.run(*self.show(name), "--query", "fullyQualifiedDomainName")
        return {"fqdn": fqdn}


class PostgresDatabase(AzureResource):
    """A database addressed as ``server/database``."""

    kind = ResourceKind.DATABASE

    def _base(self, verb: str, name: str) -> Argv:
        server, _, database = name.partition("/")
        if not database:
            msg = f"Database name must be 'server/database', got '{name}'"
            raise ValueError(msg)
        return [
            "postgres", "flexible-server", "db", verb,
            "-g", self.resource_group, "-s", server, "-d", database,
        ]  # fmt: skip

    def show(self, name: str) -> Argv:
        return self._base("show", name)

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        return [self._base("create", name)]

    def delete(self, name: str) -> Argv:
        return [*self._base("delete", name), "--yes"]


class ContainerApp(AzureResource):
    kind = ResourceKind.CONTAINER_APP

    def show(self, name: str) -> Argv:
        return ["containerapp", "show", "-g", self.resource_group, "-n", name]

    def _sizing(self, spec: Mapping[str, Any]) -> Argv:
        return [
            "--image", spec["image"],
            "--cpu", str(spec["cpu"]),
            "--memory", spec["memory"],
            "--min-replicas", str(spec["min_replicas"]),
            "--max-replicas", str(spec["max_replicas"]),
        ]  # fmt: skip

    def create(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        return [
            [
                "containerapp", "create",
                "-g", self.resource_group, "-n", name,
                "--environment", spec["environment"],
                "--location", spec["location"],
                "--target-port", str(spec["target_port"]),
                "--ingress", spec["ingress"],
                *self._sizing(spec),
                "--secrets", *_pairs(spec["secrets"]),
                "--env-vars", *_pairs(spec["env_vars"]),
            ]
        ]  # fmt: skip

    def update(self, name: str, spec: Mapping[str, Any]) -> list[Argv]:
        # Secrets are set first so the new revision's secretrefs resolve.
        secrets = [
            "containerapp", "secret", "set",
            "-g", self.resource_group, "-n", name,
            "--secrets", *_pairs(spec["secrets"]),
        ]  # fmt: skip
        update = [
            "containerapp", "update",
            "-g", self.resource_group, "-n", name,
            *self._sizing(spec),
            "--set-env-vars", *_pairs(spec["env_vars"]),
        ]  # fmt: skip
        return [secrets, update]

    def delete(self, name: str) -> Argv:
        return [
            "containerapp", "delete",
            "-g", self.resource_group, "-n", name, "--yes",
        ]  # fmt: skip

    def describe(self, cli: AzureCLI, name: str) -> dict[str, Any]:
        fqdn = cli.run(
            *self.show(name), "--query", "properties.configuration.ingress.fqdn"
        )
        return {"fqdn": fqdn}


HANDLERS: tuple[type[AzureResource], ...] = (
    ResourceGroup,
    LogWorkspace,
    ContainerAppEnvironment,
    PostgresFlexibleServer,
    PostgresDatabase,
    ContainerApp,
)


class AzureResourceStore:
    """ResourceStore backed by the Azure CLI, scoped to one resource group."""

    def __init__(self, cli: AzureCLI, resource_group: str) -> None:
        self._cli = cli
        self._resource_group = resource_group
        self._handlers: dict[ResourceKind, AzureResource] = {
            cls.kind: cls(resource_group) for cls in HANDLERS
        }

    def handler(self, kind: ResourceKind) -> AzureResource:
        return self._handlers[kind]

    def exists(self, kind: ResourceKind, name: str) -> bool:
        return self._cli.resource_exists(*self.handler(kind).show(name))

    def create(self, kind: ResourceKind, name: str, spec: Mapping[str, Any]) -> None:
        for argv in self.handler(kind).create(name, spec):
            self._cli.run(*argv)

    def update(self, kind: ResourceKind, name: str, spec: Mapping[str, Any]) -> None:
        for argv in self.handler(kind).update(name, spec):
            self._cli.run(*argv)

    def reconcile(
        self, kind: ResourceKind, name: str, spec: Mapping[str, Any]
    ) -> None:
        for show, create in self.handler(kind).dependents(name, spec):
            if not self._cli.resource_exists(*show):
                self._cli.run(*create)

    def delete(self, kind: ResourceKind, name: str, *, wait: bool = True) -> None:
        handler = self.handler(kind)
        argv = handler.delete(name)
        if not wait and handler.supports_no_wait:
            argv.append("--no-wait")
        self._cli.run(*argv)

    def describe(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        return self.handler(kind).describe(self._cli, name)

    def list_apps(self, environment: str) -> list[str]:
        names = self._cli.run(
            "containerapp", "list",
            "-g", self._resource_group,
            "--environment", environment,
            "--query", "[].name",
        )  # fmt: skip
        return list(names or [])
