"""Layered config resolution: defaults < environment < explicit options."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, TypeAdapter, ValidationError

from aca_deployer.config.defaults import load_defaults, merge_layers
from aca_deployer.config.models import DeploymentConfig, TeardownConfig
from aca_deployer.errors import ConfigError

# Field -> environment variables consulted, first non-empty one wins.
DEPLOYMENT_ENV_VARS: dict[str, tuple[str, ...]] = {
    "resource_group": ("RESOURCE_GROUP",),
    "location": ("LOCATION",),
    "env_name": ("ENV_NAME",),
    "app_name": ("APP_NAME",),
    "image": ("IMAGE",),
    "cpu": ("CPU",),
    "memory": ("MEMORY",),
    "min_replicas": ("MIN_REPLICAS",),
    "max_replicas": ("MAX_REPLICAS",),
    "pg_server_name": ("PG_SERVER_NAME",),
    "pg_database": ("PG_DB",),
    "pg_admin_user": ("PG_ADMIN_USER",),
    "pg_version": ("PG_VERSION",),
    "pg_sku": ("PG_SKU",),
    "pg_password": ("PG_PASSWORD", "N8N_PG_PASSWORD"),
    "encryption_key": ("N8N_ENCRYPTION_KEY",),
    "basic_auth_enabled": ("BASIC_AUTH_ENABLED",),
    "basic_auth_user": ("BASIC_AUTH_USER", "N8N_BASIC_AUTH_USER"),
    "basic_auth_password": ("BASIC_AUTH_PASSWORD", "N8N_BASIC_AUTH_PASSWORD"),
    "build_local_image": ("BUILD_LOCAL_IMAGE",),
    "rollback_on_error": ("ROLLBACK_ON_ERROR",),
}

TEARDOWN_ENV_VARS: dict[str, tuple[str, ...]] = {
    field: DEPLOYMENT_ENV_VARS[field]
    for field in ("resource_group", "env_name", "app_name", "pg_server_name", "image")
}

_BOOL = TypeAdapter(bool)


def environment_layer(
    environ: Mapping[str, str],
    mapping: Mapping[str, tuple[str, ...]] = DEPLOYMENT_ENV_VARS,
) -> dict[str, str]:
    """Pick config fields out of an environment mapping.

    Empty values count as unset, matching ``${VAR:-default}`` semantics.
    """
    layer: dict[str, str] = {}
    for field, names in mapping.items():
        for name in names:
            value = environ.get(name)
            if value:
                layer[field] = value
                break
    return layer


def load_env_file(path: str | Path) -> dict[str, str]:
    """Read a ``KEY=value`` file into a dict (values without a ``=`` are dropped)."""
    p = Path(path)
    if not p.is_file():
        msg = f"Provided env file '{p}' not found"
        raise ConfigError(msg, field="env_file")
    return {k: v for k, v in dotenv_values(p).items() if v is not None}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(merged: Mapping[str, Any], field: str, hint: str) -> None:
    if _is_blank(merged.get(field)):
        raise ConfigError(hint, field=field)


def _validate(model: type[BaseModel], merged: dict[str, Any], label: str) -> Any:
    try:
        return model.model_validate(merged)
    except ValidationError as exc:
        msg = f"Invalid {label} config:\n{exc}"
        raise ConfigError(msg) from exc


def resolve_deployment_config(
    defaults: Mapping[str, Any],
    environ: Mapping[str, str],
    explicit: Mapping[str, Any],
) -> DeploymentConfig:
    """Resolve one DeploymentConfig from its three layers.

    Pure function of its inputs. Explicit values that are ``None`` are treated
    as "not given".

    Raises:
        ConfigError: a required field is missing or a value is invalid.
    """
    merged = merge_layers(defaults, environment_layer(environ), explicit)

    _require(
        merged,
        "pg_password",
        "Postgres admin password is required. Use -p or set N8N_PG_PASSWORD.",
    )
    _require(
        merged,
        "encryption_key",
        "Encryption key is required and must be reused on every deploy. "
        "Create one with 'aca-deploy keygen', store it, and pass it with -k "
        "or N8N_ENCRYPTION_KEY.",
    )
    try:
        auth_enabled = _BOOL.validate_python(merged.get("basic_auth_enabled", True))
    except ValidationError as exc:
        msg = f"Invalid value for basic_auth_enabled: {exc}"
        raise ConfigError(msg, field="basic_auth_enabled") from exc
    if auth_enabled:
        _require(
            merged,
            "basic_auth_password",
            "Basic auth password required (option -s) or disable basic auth with -d.",
        )

    config: DeploymentConfig = _validate(DeploymentConfig, merged, "deployment")
    return config


def resolve_teardown_config(
    defaults: Mapping[str, Any],
    environ: Mapping[str, str],
    explicit: Mapping[str, Any],
) -> TeardownConfig:
    """Resolve a TeardownConfig with the same precedence as deployments."""
    merged = merge_layers(
        defaults, environment_layer(environ, TEARDOWN_ENV_VARS), explicit
    )
    config: TeardownConfig = _validate(TeardownConfig, merged, "teardown")
    return config


def _environment(env_file: str | Path | None) -> dict[str, str]:
    environ = dict(os.environ)
    if env_file is not None:
        environ.update(load_env_file(env_file))
    return environ


def load_deployment_config(
    explicit: Mapping[str, Any] | None = None,
    *,
    env_file: str | Path | None = None,
) -> DeploymentConfig:
    """Resolve a DeploymentConfig from built-in defaults, the process
    environment (overlaid by *env_file*) and *explicit* options."""
    return resolve_deployment_config(
        load_defaults("deployment"), _environment(env_file), explicit or {}
    )


def load_teardown_config(
    explicit: Mapping[str, Any] | None = None,
    *,
    env_file: str | Path | None = None,
) -> TeardownConfig:
    """Resolve a TeardownConfig the same way as :func:`load_deployment_config`."""
    return resolve_teardown_config(
        load_defaults("teardown"), _environment(env_file), explicit or {}
    )
