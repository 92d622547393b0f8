"""Thin wrapper around the Azure CLI (``az``)."""

from __future__ import annotations

import json
import shutil
from typing import Any

import structlog

from aca_deployer.errors import CommandError, DependencyMissingError
from aca_deployer.shell import redact, run_command

logger = structlog.get_logger()

# Markers az prints on stderr when a `show` target does not exist.
NOT_FOUND_MARKERS = ("notfound", "could not be found", "was not found")


class AzureCLI:
    """Runs ``az`` commands and decodes their JSON output."""

    def __init__(self, executable: str = "az") -> None:
        self._executable = executable

    def available(self) -> bool:
        return shutil.which(self._executable) is not None

    def require(self) -> None:
        """Fail fast when the CLI is not installed."""
        if not self.available():
            msg = "Azure CLI not found. Install from https://aka.ms/azcli."
            raise DependencyMissingError(msg)

    def run(self, *args: str) -> Any:
        """Run ``az <args> --output json`` and return the decoded output.

        Raises:
            CommandError: the command exited non-zero.
        """
        result = run_command([self._executable, *args, "--output", "json"])
        out = result.stdout.strip()
        return json.loads(out) if out else None

    def succeeds(self, *args: str) -> bool:
        """Run a read-only command and report only whether it succeeded."""
        result = run_command(
            [self._executable, *args, "--output", "none"], check=False
        )
        return result.returncode == 0

    def resource_exists(self, *args: str) -> bool:
        """Run a `show` command and report whether its target exists.

        Only a not-found answer counts as absent.

        Raises:
            CommandError: the command failed for any other reason
                (throttling, expired login, network).
        """
        argv = [self._executable, *args, "--output", "none"]
        result = run_command(argv, check=False)
        if result.returncode == 0:
            return True
        stderr = result.stderr or ""
        if any(marker in stderr.lower() for marker in NOT_FOUND_MARKERS):
            return False
        raise CommandError(redact(argv), result.returncode, stderr)

    def ensure_extension(self, name: str = "containerapp") -> None:
        """Install *name* if missing, otherwise try to update it."""
        if not self.succeeds("extension", "show", "--name", name):
            logger.info("az.extension_installing", extension=name)
            try:
                self.run("extension", "add", "--name", name, "--upgrade")
            except CommandError as exc:
                msg = f"Could not install Azure CLI extension '{name}': {exc}"
                raise DependencyMissingError(msg) from exc
            return
        try:
            self.run("extension", "update", "--name", name)
        except CommandError as exc:
            # Already at the latest version is reported as an error.
            logger.warning("az.extension_update_failed", extension=name, error=str(exc))

    def logged_in(self) -> bool:
        return self.succeeds("account", "show")
