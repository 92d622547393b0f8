"""Container App secrets, environment variables and resource specs."""

from __future__ import annotations

from typing import Any

from aca_deployer.config.models import DeploymentConfig

SECRET_ENCRYPTION_KEY = "encryption-key"
SECRET_PG_PASSWORD = "pg-password"
SECRET_BASIC_AUTH_PASSWORD = "basic-auth-password"

POSTGRES_PORT = 5432

FIREWALL_RULE_NAME = "AllowAzureServices"
# 0.0.0.0-0.0.0.0 is Azure's marker for "any Azure service".
AZURE_SERVICES_IP = "0.0.0.0"  # noqa: S104


def secret_ref(name: str) -> str:
    return f"secretref:{name}"


def app_secrets(config: DeploymentConfig) -> dict[str, str]:
    """Named secrets stored on the Container App."""
    secrets = {
        SECRET_ENCRYPTION_KEY: config.encryption_key.get_secret_value(),
        SECRET_PG_PASSWORD: config.pg_password.get_secret_value(),
    }
    if config.basic_auth_enabled and config.basic_auth_password is not None:
        secrets[SECRET_BASIC_AUTH_PASSWORD] = (
            config.basic_auth_password.get_secret_value()
        )
    return secrets


def app_env_vars(config: DeploymentConfig, db_host: str) -> dict[str, str]:
    """Environment variables for the app; credentials are secret references."""
    env = {
        "DB_TYPE": "postgresdb",
        "DB_POSTGRESDB_HOST": db_host,
        "DB_POSTGRESDB_PORT": str(POSTGRES_PORT),
        "DB_POSTGRESDB_DATABASE": config.pg_database,
        "DB_POSTGRESDB_USER": config.pg_login,
        "DB_POSTGRESDB_PASSWORD": secret_ref(SECRET_PG_PASSWORD),
        "N8N_ENCRYPTION_KEY": secret_ref(SECRET_ENCRYPTION_KEY),
        "GENERIC_TIMEZONE": config.timezone,
        "WEBHOOK_URL": config.webhook_url,
    }
    if config.basic_auth_enabled:
        env["N8N_BASIC_AUTH_ACTIVE"] = "true"
        env["N8N_BASIC_AUTH_USER"] = config.basic_auth_user
        env["N8N_BASIC_AUTH_PASSWORD"] = secret_ref(SECRET_BASIC_AUTH_PASSWORD)
    else:
        env["N8N_BASIC_AUTH_ACTIVE"] = "false"
    return env


def resource_group_spec(config: DeploymentConfig) -> dict[str, Any]:
    return {"location": config.location}


def workspace_spec(config: DeploymentConfig) -> dict[str, Any]:
    return {"location": config.location}


def environment_spec(
    config: DeploymentConfig, workspace_id: str, workspace_key: str
) -> dict[str, Any]:
    return {
        "location": config.location,
        "workspace_id": workspace_id,
        "workspace_key": workspace_key,
    }


def sku_tier(sku: str) -> str:
    """Flexible Server compute tier implied by a SKU name."""
    if sku.startswith("Standard_B"):
        return "Burstable"
    if sku.startswith("Standard_E"):
        return "MemoryOptimized"
    return "GeneralPurpose"


def database_server_spec(config: DeploymentConfig) -> dict[str, Any]:
    return {
        "location": config.location,
        "admin_user": config.pg_admin_user,
        "admin_password": config.pg_password.get_secret_value(),
        "sku": config.pg_sku,
        "tier": sku_tier(config.pg_sku),
        "version": config.pg_version,
        "storage_size_gb": config.pg_storage_size_gb,
        "firewall_rule": {
            "name": FIREWALL_RULE_NAME,
            "start_ip": AZURE_SERVICES_IP,
            "end_ip": AZURE_SERVICES_IP,
        },
    }


def container_app_spec(config: DeploymentConfig, db_host: str) -> dict[str, Any]:
    """Spec shared by the create and the update-in-place paths."""
    return {
        "environment": config.env_name,
        "location": config.location,
        "image": config.image,
        "target_port": config.target_port,
        "ingress": "external",
        "cpu": config.cpu,
        "memory": config.memory,
        "min_replicas": config.min_replicas,
        "max_replicas": config.max_replicas,
        "secrets": app_secrets(config),
        "env_vars": app_env_vars(config, db_host),
    }
