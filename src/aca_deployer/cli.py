"""Typer CLI for deploying to and tearing down Azure Container Apps."""

from __future__ import annotations

import secrets
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aca_deployer.artifacts.image import (
    ContainerRegistry,
    DockerImages,
    LocalArtifactPreparer,
    SourceBuilder,
)
from aca_deployer.artifacts.purge import purge_local_artifacts
from aca_deployer.azure.cli import AzureCLI
from aca_deployer.azure.resources import AzureResourceStore
from aca_deployer.config.loader import load_deployment_config, load_teardown_config
from aca_deployer.config.models import DeploymentConfig
from aca_deployer.errors import DeployError
from aca_deployer.observability.health import (
    Status,
    check_endpoint,
    check_preflight,
    wait_until_reachable,
)
from aca_deployer.observability.logging import configure_logging
from aca_deployer.provisioning.base import RunOutcome
from aca_deployer.provisioning.runner import DeploymentResult, Provisioner
from aca_deployer.provisioning.teardown import Confirm, TeardownReport, TeardownSequencer

console = Console()
app = typer.Typer(
    name="aca-deploy",
    help="Deploy an application on Azure Container Apps with PostgreSQL.",
    context_settings={"help_option_names": ["-h", "--help"]},
    no_args_is_help=True,
)


def _confirmer(assume_yes: bool) -> Confirm:
    def confirm(question: str) -> bool:
        if assume_yes:
            return True
        return typer.confirm(question, default=False)

    return confirm


def _fail(prefix: str, exc: DeployError) -> typer.Exit:
    console.print(f"[red]{prefix}:[/red] {escape(str(exc))}")
    return typer.Exit(exc.exit_code)


def _print_deployment(result: DeploymentResult, config: DeploymentConfig) -> None:
    table = Table(title=f"Resources in {config.resource_group}")
    table.add_column("Kind", style="cyan")
    table.add_column("Name")
    table.add_column("Action")
    for r in result.records:
        if r.created_by_this_run:
            action = "[green]created[/green]"
        elif r.updated_by_this_run:
            action = "[yellow]updated[/yellow]"
        elif r.existed_before_run:
            action = "reused"
        else:
            action = "[red]failed[/red]"
        table.add_row(r.kind.value, r.name, action)
    console.print(table)

    if result.error is not None:
        console.print(
            f"[red]Deployment failed ({result.outcome}):[/red] "
            f"{escape(str(result.error))}"
        )
        console.print(
            "[yellow]Manual cleanup may be required.[/yellow]"
            if result.outcome is RunOutcome.FAILED_WITHOUT_ROLLBACK
            else f"[yellow]Deletion of resource group '{config.resource_group}' "
            "was started; check 'az group show' to confirm it is gone.[/yellow]"
        )
        return

    console.print("[green]Deployment successful![/green]")
    console.print(f"  endpoint: {result.endpoint}")
    if config.basic_auth_enabled:
        console.print(
            f"  login with user '{config.basic_auth_user}' and the password you supplied"
        )


def _print_teardown(report: TeardownReport) -> None:
    if report.nothing_to_do:
        console.print(
            "[yellow]Resource group does not exist; nothing to clean up.[/yellow]"
        )
        return
    if report.aborted:
        console.print("[yellow]Cleanup aborted.[/yellow]")
        return
    for kind, name in report.deleted:
        console.print(f"  [green]deleted[/green] {kind} {name}")
    for kind, name in report.skipped:
        console.print(f"  [dim]skipped[/dim] {kind} {name}")
    for err in report.failed:
        console.print(f"  [red]failed[/red]  {escape(str(err))}")
    console.print("[green]Cleanup finished.[/green]")


@app.command()
def deploy(
    resource_group: str | None = typer.Option(
        None, "--resource-group", "-g", help="Resource group name"
    ),
    location: str | None = typer.Option(None, "--location", "-l", help="Azure region"),
    env_name: str | None = typer.Option(
        None, "--env-name", "-e", help="Container Apps environment name"
    ),
    app_name: str | None = typer.Option(
        None, "--app-name", "-a", help="Container App name"
    ),
    image: str | None = typer.Option(None, "--image", "-i", help="Container image"),
    cpu: float | None = typer.Option(None, "--cpu", "-c", help="CPU cores"),
    memory: str | None = typer.Option(None, "--memory", "-m", help="Memory, e.g. 2.0Gi"),
    min_replicas: int | None = typer.Option(
        None, "--min-replicas", "-r", help="Minimum replicas"
    ),
    max_replicas: int | None = typer.Option(
        None, "--max-replicas", "-x", help="Maximum replicas"
    ),
    pg_password: str | None = typer.Option(
        None, "--pg-password", "-p", help="Postgres admin password"
    ),
    encryption_key: str | None = typer.Option(
        None, "--encryption-key", "-k", help="App encryption key (reuse on every run)"
    ),
    basic_auth_user: str | None = typer.Option(
        None, "--basic-auth-user", "-u", help="Basic auth user"
    ),
    basic_auth_password: str | None = typer.Option(
        None, "--basic-auth-password", "-s", help="Basic auth password"
    ),
    disable_basic_auth: bool = typer.Option(
        False, "--disable-basic-auth", "-d", help="Disable basic auth"
    ),
    env_file: Path | None = typer.Option(
        None, "--env-file", "-f", help="KEY=value file applied over the environment"
    ),
    source_dir: Path | None = typer.Option(
        None, "--source-dir", help="Checkout holding scripts/ and compiled/"
    ),
    no_rollback: bool = typer.Option(
        False, "--no-rollback", help="Keep partially created resources on failure"
    ),
    no_build: bool = typer.Option(
        False, "--no-build", help="Fail instead of building a missing local image"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Log as JSON lines"),
) -> None:
    """Create or update every resource and deploy the container app."""
    configure_logging(json_output=json_logs)
    explicit: dict[str, Any] = {
        "resource_group": resource_group,
        "location": location,
        "env_name": env_name,
        "app_name": app_name,
        "image": image,
        "cpu": cpu,
        "memory": memory,
        "min_replicas": min_replicas,
        "max_replicas": max_replicas,
        "pg_password": pg_password,
        "encryption_key": encryption_key,
        "basic_auth_user": basic_auth_user,
        "basic_auth_password": basic_auth_password,
        "basic_auth_enabled": False if disable_basic_auth else None,
        "rollback_on_error": False if no_rollback else None,
        "build_local_image": False if no_build else None,
        "source_dir": source_dir,
    }
    try:
        config = load_deployment_config(explicit, env_file=env_file)
        az = AzureCLI()
        az.require()
        az.ensure_extension("containerapp")
        preparer = LocalArtifactPreparer(
            DockerImages(),
            SourceBuilder(config.source_dir),
            ContainerRegistry(az),
            allow_build=config.build_local_image,
        )
        store = AzureResourceStore(az, config.resource_group)
        result = Provisioner(config, store, preparer).run()
    except DeployError as exc:
        raise _fail("Deployment aborted", exc) from exc

    _print_deployment(result, config)
    if result.exit_code:
        raise typer.Exit(result.exit_code)


@app.command()
def teardown(
    resource_group: str | None = typer.Option(
        None, "--resource-group", "-g", help="Resource group name"
    ),
    env_name: str | None = typer.Option(
        None, "--env-name", "-e", help="Container Apps environment name"
    ),
    app_name: str | None = typer.Option(
        None, "--app-name", "-a", help="Container App name"
    ),
    pg_server_name: str | None = typer.Option(
        None, "--pg-server", "-s", help="PostgreSQL Flexible Server name"
    ),
    image: str | None = typer.Option(
        None, "--image", "-i", help="Image to remove locally"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompts"),
    env_file: Path | None = typer.Option(
        None, "--env-file", "-f", help="KEY=value file applied over the environment"
    ),
    source_dir: Path | None = typer.Option(
        None, "--source-dir", help="Checkout holding compiled/"
    ),
    purge: bool = typer.Option(
        True, "--purge/--no-purge", help="Also offer to remove local artifacts"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Log as JSON lines"),
) -> None:
    """Delete the deployment's resources in reverse order."""
    configure_logging(json_output=json_logs)
    explicit: dict[str, Any] = {
        "resource_group": resource_group,
        "env_name": env_name,
        "app_name": app_name,
        "pg_server_name": pg_server_name,
        "image": image,
        "source_dir": source_dir,
    }
    confirm = _confirmer(yes)
    try:
        config = load_teardown_config(explicit, env_file=env_file)
        az = AzureCLI()
        az.require()
    except DeployError as exc:
        raise _fail("Cleanup aborted", exc) from exc

    store = AzureResourceStore(az, config.resource_group)
    report = TeardownSequencer(config, store, confirm).run()
    if purge and not (report.nothing_to_do or report.aborted):
        report.failed.extend(
            purge_local_artifacts(config, DockerImages(), ContainerRegistry(az), confirm)
        )
    _print_teardown(report)


@app.command()
def validate(
    env_file: Path | None = typer.Option(
        None, "--env-file", "-f", help="KEY=value file applied over the environment"
    ),
) -> None:
    """Resolve the effective deployment config without touching Azure."""
    try:
        config = load_deployment_config(env_file=env_file)
    except DeployError as exc:
        raise _fail("Invalid configuration", exc) from exc

    table = Table(title="Effective deployment config")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in config.model_dump(mode="json").items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def keygen() -> None:
    """Print a fresh encryption key. Store it and pass it on every deploy."""
    console.print(secrets.token_hex(16))


@app.command()
def health(
    url: str | None = typer.Option(None, "--url", help="Deployed endpoint to probe"),
    wait: float = typer.Option(
        0.0, "--wait", help="Seconds to keep retrying the endpoint probe"
    ),
) -> None:
    """Check local prerequisites and, optionally, a deployed endpoint."""
    result = check_preflight()
    if url:
        probe = wait_until_reachable(url, wait) if wait > 0 else check_endpoint(url)
        result.components.append(probe)

    table = Table(title="Deployment Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")

    for c in result.components:
        style = "green" if c.status == Status.HEALTHY else "red"
        table.add_row(c.name, f"[{style}]{c.status}[/{style}]", c.detail)

    console.print(table)
    if not result.healthy:
        raise typer.Exit(1)
