#!/usr/bin/env python3
"""Runnable demo: deploy n8n to Azure Container Apps, probe it, tear it down.

Prerequisites:
    az login
    export N8N_PG_PASSWORD=... N8N_ENCRYPTION_KEY=$(aca-deploy keygen)
    python examples/deploy_demo.py
"""

from __future__ import annotations

import sys

from rich.console import Console

from aca_deployer.azure.cli import AzureCLI
from aca_deployer.azure.resources import AzureResourceStore
from aca_deployer.config.loader import load_deployment_config, load_teardown_config
from aca_deployer.errors import DeployError
from aca_deployer.observability.health import (
    Status,
    check_preflight,
    wait_until_reachable,
)
from aca_deployer.observability.logging import configure_logging
from aca_deployer.provisioning.runner import Provisioner
from aca_deployer.provisioning.teardown import TeardownSequencer

console = Console()


def _ask(question: str) -> bool:
    return console.input(f"{question} (y/N) ").strip().lower() == "y"


def main() -> None:
    configure_logging()

    # 1. Local prerequisites
    health = check_preflight()
    if not health.healthy:
        console.print("[red]Prerequisites missing:[/red]", health.summary)
        sys.exit(1)

    # 2. Config from defaults + environment; a public image skips the local build
    try:
        config = load_deployment_config(
            {
                "image": "docker.io/n8nio/n8n:latest",
                "basic_auth_enabled": False,
                "build_local_image": False,
            }
        )
    except DeployError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)

    az = AzureCLI()
    az.ensure_extension("containerapp")
    store = AzureResourceStore(az, config.resource_group)

    # 3. Provision
    result = Provisioner(config, store).run()
    if result.endpoint is None:
        console.print(f"[red]Deployment failed ({result.outcome})[/red]")
        sys.exit(result.exit_code)
    console.print(f"[green]Deployed[/green] {result.endpoint}")

    # 4. Wait for the first revision to answer
    probe = wait_until_reachable(result.endpoint, timeout_seconds=600)
    style = "green" if probe.status == Status.HEALTHY else "red"
    console.print(f"[{style}]endpoint {probe.status}[/{style}] {probe.detail}")

    # 5. Tear down
    teardown = load_teardown_config(
        {
            "resource_group": config.resource_group,
            "env_name": config.env_name,
            "app_name": config.app_name,
            "pg_server_name": config.pg_server_name,
        }
    )
    report = TeardownSequencer(teardown, store, _ask).run()
    console.print(
        f"deleted={len(report.deleted)} skipped={len(report.skipped)} "
        f"failed={len(report.failed)}"
    )


if __name__ == "__main__":
    main()
