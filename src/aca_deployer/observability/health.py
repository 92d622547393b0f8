"""Preflight and post-deploy health probes."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from enum import StrEnum

import httpx
import structlog
from tenacity import (
    RetryError,
    retry,
    retry_if_result,
    stop_after_delay,
    wait_exponential,
)

from aca_deployer.azure.cli import AzureCLI

logger = structlog.get_logger()


class Status(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    name: str
    status: Status = Status.UNKNOWN
    detail: str = ""


@dataclass
class DeploymentHealth:
    components: list[ComponentHealth] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return all(c.status == Status.HEALTHY for c in self.components)

    @property
    def summary(self) -> dict[str, str]:
        return {c.name: c.status.value for c in self.components}


def check_azure_cli(cli: AzureCLI) -> ComponentHealth:
    """Probe that the az executable is installed."""
    if cli.available():
        return ComponentHealth(name="azure-cli", status=Status.HEALTHY, detail="found")
    return ComponentHealth(
        name="azure-cli",
        status=Status.UNHEALTHY,
        detail="not found; install from https://aka.ms/azcli",
    )


def check_azure_login(cli: AzureCLI) -> ComponentHealth:
    """Probe for a logged-in Azure session."""
    try:
        if cli.logged_in():
            return ComponentHealth(
                name="azure-login", status=Status.HEALTHY, detail="session active"
            )
        return ComponentHealth(
            name="azure-login", status=Status.UNHEALTHY, detail="run 'az login'"
        )
    except Exception as exc:
        return ComponentHealth(
            name="azure-login", status=Status.UNHEALTHY, detail=str(exc)
        )


def check_docker(executable: str = "docker") -> ComponentHealth:
    """Probe that the Docker CLI is installed."""
    path = shutil.which(executable)
    if path:
        return ComponentHealth(name="docker", status=Status.HEALTHY, detail=path)
    return ComponentHealth(name="docker", status=Status.UNHEALTHY, detail="not found")


def check_endpoint(url: str, timeout: float = 5.0) -> ComponentHealth:
    """Probe the deployed app over HTTPS. Any non-5xx answer counts as up."""
    try:
        resp = httpx.get(url, timeout=timeout, follow_redirects=True)
        if resp.status_code >= 500:
            return ComponentHealth(
                name="endpoint",
                status=Status.UNHEALTHY,
                detail=f"HTTP {resp.status_code}",
            )
        return ComponentHealth(
            name="endpoint", status=Status.HEALTHY, detail=f"HTTP {resp.status_code}"
        )
    except Exception as exc:
        return ComponentHealth(name="endpoint", status=Status.UNHEALTHY, detail=str(exc))


def wait_until_reachable(url: str, timeout_seconds: float = 300.0) -> ComponentHealth:
    """Poll the endpoint until it answers or *timeout_seconds* elapse.

    A scale-to-zero app answers slowly on its first request, so the probe is
    retried with exponential backoff.
    """

    @retry(
        retry=retry_if_result(lambda h: h.status != Status.HEALTHY),
        stop=stop_after_delay(timeout_seconds),
        wait=wait_exponential(multiplier=2, max=30),
    )
    def _probe() -> ComponentHealth:
        health = check_endpoint(url)
        logger.info("health.endpoint_probe", url=url, status=health.status.value)
        return health

    try:
        return _probe()
    except RetryError as exc:
        return exc.last_attempt.result()  # type: ignore[no-any-return]


def check_preflight(cli: AzureCLI | None = None) -> DeploymentHealth:
    """Run the local prerequisite checks."""
    az = cli or AzureCLI()
    components = [check_azure_cli(az)]
    if components[0].status == Status.HEALTHY:
        components.append(check_azure_login(az))
    components.append(check_docker())
    return DeploymentHealth(components=components)
