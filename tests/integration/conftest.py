"""Fixtures for tests that run against a real Azure subscription."""

from __future__ import annotations

import os
import secrets
import shutil

import pytest

from aca_deployer.azure.cli import AzureCLI


def pytest_collection_modifyitems(config, items):
    if os.environ.get("ACA_DEPLOY_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set ACA_DEPLOY_INTEGRATION=1 to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def az() -> AzureCLI:
    if shutil.which("az") is None:
        pytest.skip("Azure CLI not installed")
    cli = AzureCLI()
    if not cli.logged_in():
        pytest.skip("not logged in to Azure")
    return cli


@pytest.fixture(scope="session")
def run_suffix() -> str:
    """Short random suffix so parallel runs never share resource names."""
    return secrets.token_hex(3)
