"""Unit tests for preflight and endpoint health probes."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import respx

from aca_deployer.observability.health import (
    ComponentHealth,
    DeploymentHealth,
    Status,
    check_azure_cli,
    check_azure_login,
    check_docker,
    check_endpoint,
    check_preflight,
    wait_until_reachable,
)

URL = "https://n8n-app.example.azurecontainerapps.io"


class TestDeploymentHealth:
    def test_healthy_when_all_healthy(self):
        health = DeploymentHealth(
            components=[
                ComponentHealth(name="a", status=Status.HEALTHY),
                ComponentHealth(name="b", status=Status.HEALTHY),
            ]
        )
        assert health.healthy
        assert health.summary == {"a": "healthy", "b": "healthy"}

    def test_unknown_is_not_healthy(self):
        assert not DeploymentHealth(components=[ComponentHealth(name="a")]).healthy


class TestPreflight:
    def test_cli_missing(self):
        cli = MagicMock()
        cli.available.return_value = False
        assert check_azure_cli(cli).status == Status.UNHEALTHY

    def test_login(self):
        cli = MagicMock()
        cli.logged_in.return_value = True
        assert check_azure_login(cli).status == Status.HEALTHY

    def test_login_error(self):
        cli = MagicMock()
        cli.logged_in.side_effect = RuntimeError("token expired")
        result = check_azure_login(cli)
        assert result.status == Status.UNHEALTHY
        assert "token expired" in result.detail

    def test_docker_missing(self):
        with patch("shutil.which", return_value=None):
            assert check_docker().status == Status.UNHEALTHY

    def test_login_skipped_without_cli(self):
        cli = MagicMock()
        cli.available.return_value = False
        with patch("shutil.which", return_value="/usr/bin/docker"):
            health = check_preflight(cli)
        assert [c.name for c in health.components] == ["azure-cli", "docker"]
        cli.logged_in.assert_not_called()

    def test_all_present(self):
        cli = MagicMock()
        cli.available.return_value = True
        cli.logged_in.return_value = True
        with patch("shutil.which", return_value="/usr/bin/docker"):
            health = check_preflight(cli)
        assert health.healthy


class TestEndpoint:
    @respx.mock
    def test_ok(self):
        respx.get(URL).mock(return_value=httpx.Response(200))
        assert check_endpoint(URL).status == Status.HEALTHY

    @respx.mock
    def test_auth_challenge_counts_as_up(self):
        respx.get(URL).mock(return_value=httpx.Response(401))
        assert check_endpoint(URL).status == Status.HEALTHY

    @respx.mock
    def test_server_error(self):
        respx.get(URL).mock(return_value=httpx.Response(503))
        result = check_endpoint(URL)
        assert result.status == Status.UNHEALTHY
        assert result.detail == "HTTP 503"

    @respx.mock
    def test_connection_error(self):
        respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))
        assert check_endpoint(URL).status == Status.UNHEALTHY

    @respx.mock
    def test_wait_until_reachable_retries(self):
        route = respx.get(URL).mock(
            side_effect=[httpx.Response(502), httpx.Response(200)]
        )
        with patch("time.sleep"):
            result = wait_until_reachable(URL, timeout_seconds=60)
        assert result.status == Status.HEALTHY
        assert route.call_count == 2

    @respx.mock
    def test_wait_until_reachable_gives_up(self):
        respx.get(URL).mock(return_value=httpx.Response(500))
        result = wait_until_reachable(URL, timeout_seconds=0)
        assert result.status == Status.UNHEALTHY
