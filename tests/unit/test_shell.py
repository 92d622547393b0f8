"""Unit tests for subprocess execution and argument redaction."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

import pytest

from aca_deployer.errors import CommandError, DependencyMissingError
from aca_deployer.shell import redact, run_command


def _completed(returncode: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(["x"], returncode, stdout, stderr)


class TestRedact:
    def test_plain_argv_unchanged(self):
        argv = ["az", "group", "show", "--name", "rg"]
        assert redact(argv) == argv

    def test_admin_password_masked(self):
        argv = ["az", "postgres", "--admin-password", "hunter2", "--yes"]
        assert redact(argv) == ["az", "postgres", "--admin-password", "***", "--yes"]

    def test_secrets_keep_names(self):
        argv = ["--secrets", "pg-password=a", "encryption-key=b", "--env-vars", "X=1"]
        assert redact(argv) == [
            "--secrets",
            "pg-password=***",
            "encryption-key=***",
            "--env-vars",
            "X=1",
        ]

    def test_workspace_key_masked(self):
        assert redact(["--logs-workspace-key", "abc"]) == ["--logs-workspace-key", "***"]


class TestRunCommand:
    def test_returns_completed_process(self):
        with patch("subprocess.run", return_value=_completed(stdout="ok")) as run:
            result = run_command(["echo", "ok"])
        assert result.stdout == "ok"
        assert run.call_args.kwargs["capture_output"] is True
        assert run.call_args.kwargs["env"] is None

    def test_extra_env_merged_over_process_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("KEEP_ME", "1")
        with patch("subprocess.run", return_value=_completed()) as run:
            run_command(["node", "x.mjs"], env={"IMAGE_TAG": "dev"})
        env = run.call_args.kwargs["env"]
        assert env["IMAGE_TAG"] == "dev"
        assert env["KEEP_ME"] == "1"

    def test_nonzero_raises_command_error(self):
        with patch("subprocess.run", return_value=_completed(2, stderr=" boom \n")):
            with pytest.raises(CommandError) as exc_info:
                run_command(["az", "group", "show"])
        assert exc_info.value.returncode == 2
        assert exc_info.value.stderr == "boom"

    def test_error_message_is_redacted(self):
        with patch("subprocess.run", return_value=_completed(1)):
            with pytest.raises(CommandError) as exc_info:
                run_command(["az", "--admin-password", "hunter2"])
        assert "hunter2" not in str(exc_info.value)

    def test_nonzero_without_check(self):
        with patch("subprocess.run", return_value=_completed(3)):
            assert run_command(["false"], check=False).returncode == 3

    def test_missing_executable(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("az")):
            with pytest.raises(DependencyMissingError, match="az"):
                run_command(["az", "version"])
