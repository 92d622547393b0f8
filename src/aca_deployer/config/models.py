"""Pydantic configuration models for deployment and teardown runs."""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

# Container Apps accepts memory in Gi, in 0.5 steps paired with CPU.
MEMORY_PATTERN = r"^\d+(\.\d+)?Gi$"


class DeploymentConfig(BaseModel):
    """Resolved, immutable configuration for one provisioning run.

    Built once by :func:`aca_deployer.config.loader.resolve_deployment_config`
    from defaults, environment and explicit options, then passed to every
    component that needs it.
    """

    model_config = ConfigDict(frozen=True)

    resource_group: str = Field(default="n8n-rg", min_length=1)
    location: str = "eastus"
    env_name: str = Field(default="n8n-env", min_length=1)
    app_name: str = Field(default="n8n-app", min_length=1)
    image: str = Field(default="n8n-local:dev", min_length=1)

    # -- Sizing ----------------------------------------------------------------
    cpu: float = Field(default=1.0, gt=0)
    memory: str = Field(default="2.0Gi", pattern=MEMORY_PATTERN)
    min_replicas: int = Field(default=0, ge=0)
    max_replicas: int = Field(default=5, ge=1)
    target_port: int = Field(default=5678, ge=1, le=65535)

    # -- PostgreSQL Flexible Server --------------------------------------------
    pg_server_name: str = Field(default="n8ndb", min_length=1)
    pg_database: str = Field(default="n8n", min_length=1)
    # Flexible Server reserves "postgres" for itself.
    pg_admin_user: str = "azureuser"
    pg_password: SecretStr
    pg_version: str = "15"
    pg_sku: str = "Standard_B1ms"
    pg_storage_size_gb: int = Field(default=32, ge=32)

    # -- Application secrets ---------------------------------------------------
    # Must be the same value on every run against an existing app, otherwise
    # previously encrypted credentials become unreadable.
    encryption_key: SecretStr
    basic_auth_enabled: bool = True
    basic_auth_user: str = "admin"
    basic_auth_password: SecretStr | None = None
    timezone: str = "UTC"

    # -- Run behaviour ---------------------------------------------------------
    build_local_image: bool = True
    rollback_on_error: bool = True
    source_dir: Path = Path(".")

    @model_validator(mode="after")
    def check_invariants(self) -> Self:
        """Validate cross-field constraints."""
        if self.max_replicas < self.min_replicas:
            msg = (
                f"max_replicas ({self.max_replicas}) must be >= "
                f"min_replicas ({self.min_replicas})"
            )
            raise ValueError(msg)
        if self.pg_admin_user.lower() == "postgres":
            msg = "pg_admin_user cannot be 'postgres' on a Flexible Server"
            raise ValueError(msg)
        if self.basic_auth_enabled and (
            self.basic_auth_password is None
            or not self.basic_auth_password.get_secret_value()
        ):
            msg = "basic_auth_password is required when basic auth is enabled"
            raise ValueError(msg)
        return self

    @property
    def workspace_name(self) -> str:
        return workspace_name_for(self.env_name)

    @property
    def database_resource_name(self) -> str:
        """Database name qualified by its server, as ``server/database``."""
        return f"{self.pg_server_name}/{self.pg_database}"

    @property
    def pg_login(self) -> str:
        return f"{self.pg_admin_user}@{self.pg_server_name}"

    @property
    def webhook_url(self) -> str:
        return f"https://{self.app_name}.{self.location}.azurecontainerapps.io/"


class TeardownConfig(BaseModel):
    """Names of the resources and local artifacts a teardown run removes."""

    model_config = ConfigDict(frozen=True)

    resource_group: str = Field(default="n8n-rg", min_length=1)
    env_name: str = Field(default="n8n-env", min_length=1)
    app_name: str = Field(default="n8n-app", min_length=1)
    pg_server_name: str = Field(default="n8ndb", min_length=1)
    image: str = Field(default="n8n-local:dev", min_length=1)
    source_dir: Path = Path(".")

    @property
    def workspace_name(self) -> str:
        return workspace_name_for(self.env_name)

    @property
    def compiled_dir(self) -> Path:
        return self.source_dir / "compiled"


def workspace_name_for(env_name: str) -> str:
    """Log Analytics workspace backing a Container Apps environment."""
    return f"{env_name}-logs"
