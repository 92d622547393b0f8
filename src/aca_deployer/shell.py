"""Subprocess helpers shared by the az, docker and node collaborators."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

import structlog

from aca_deployer.errors import CommandError, DependencyMissingError

logger = structlog.get_logger()

# Flags whose following value(s) must never reach a log line.
SENSITIVE_FLAGS = frozenset(
    {"--admin-password", "--secrets", "--password", "--logs-workspace-key"}
)

MASK = "***"


def _mask(value: str) -> str:
    name, sep, _ = value.partition("=")
    return f"{name}={MASK}" if sep else MASK


def redact(argv: Sequence[str]) -> list[str]:
    """Return *argv* with the values of sensitive flags masked.

    ``--secrets`` takes several ``name=value`` items, so masking continues
    until the next ``--flag``.
    """
    redacted: list[str] = []
    masking = False
    for arg in argv:
        if arg.startswith("--"):
            masking = arg in SENSITIVE_FLAGS
            redacted.append(arg)
        elif masking:
            redacted.append(_mask(arg))
        else:
            redacted.append(arg)
    return redacted


def run_command(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: str | Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *argv* to completion and capture its output.

    Raises:
        DependencyMissingError: the executable is not on PATH.
        CommandError: the command exited non-zero and *check* is true.
    """
    logger.debug("shell.run", command=" ".join(redact(argv)))
    try:
        result = subprocess.run(
            list(argv),
            capture_output=True,
            text=True,
            env={**os.environ, **env} if env else None,
            cwd=cwd,
            check=False,
        )
    except FileNotFoundError as exc:
        msg = f"'{argv[0]}' not found on PATH"
        raise DependencyMissingError(msg) from exc
    if check and result.returncode != 0:
        raise CommandError(redact(argv), result.returncode, result.stderr or "")
    return result
