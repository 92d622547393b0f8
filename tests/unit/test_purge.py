"""Unit tests for local artifact purging."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from aca_deployer.artifacts.purge import purge_local_artifacts
from aca_deployer.config.models import TeardownConfig
from aca_deployer.errors import CommandError, DependencyMissingError


def _yes(question: str) -> bool:
    return True


def _no(question: str) -> bool:
    return False


def _compiled(tmp_path: Path) -> Path:
    compiled = tmp_path / "compiled"
    compiled.mkdir()
    (compiled / "main.js").write_text("// built")
    return compiled


class TestPurgeLocalArtifacts:
    def test_removes_everything_when_confirmed(self, tmp_path: Path):
        compiled = _compiled(tmp_path)
        images = MagicMock()
        images.present.return_value = True
        registry = MagicMock()
        cfg = TeardownConfig(source_dir=tmp_path)

        failures = purge_local_artifacts(cfg, images, registry, _yes)

        assert failures == []
        assert not compiled.exists()
        images.remove.assert_called_once_with("n8n-local:dev")
        registry.delete_image.assert_not_called()

    def test_nothing_removed_when_declined(self, tmp_path: Path):
        compiled = _compiled(tmp_path)
        images = MagicMock()
        images.present.return_value = True
        cfg = TeardownConfig(source_dir=tmp_path)

        purge_local_artifacts(cfg, images, MagicMock(), _no)

        assert compiled.exists()
        images.remove.assert_not_called()

    def test_missing_artifacts_not_prompted(self, tmp_path: Path):
        images = MagicMock()
        images.present.return_value = False
        confirm = MagicMock(return_value=True)

        purge_local_artifacts(
            TeardownConfig(source_dir=tmp_path), images, MagicMock(), confirm
        )

        confirm.assert_not_called()

    def test_registry_image_deleted(self, tmp_path: Path):
        images = MagicMock()
        images.present.return_value = False
        registry = MagicMock()
        cfg = TeardownConfig(source_dir=tmp_path, image="myreg.azurecr.io/n8n:1.2")

        purge_local_artifacts(cfg, images, registry, _yes)

        registry.login.assert_called_once_with("myreg")
        registry.delete_image.assert_called_once_with("myreg", "n8n:1.2")

    def test_registry_image_deleted_by_digest(self, tmp_path: Path):
        images = MagicMock()
        images.present.return_value = False
        registry = MagicMock()
        cfg = TeardownConfig(
            source_dir=tmp_path, image="myreg.azurecr.io/n8n@sha256:abc123"
        )

        purge_local_artifacts(cfg, images, registry, _yes)

        registry.delete_image.assert_called_once_with("myreg", "n8n@sha256:abc123")

    def test_failures_collected_and_later_steps_run(self, tmp_path: Path):
        images = MagicMock()
        images.present.return_value = True
        images.remove.side_effect = CommandError(["docker", "rmi"], 1, "in use")
        registry = MagicMock()
        cfg = TeardownConfig(source_dir=tmp_path, image="myreg.azurecr.io/n8n:1.2")

        failures = purge_local_artifacts(cfg, images, registry, _yes)

        assert [f.target for f in failures] == ["local_image"]
        registry.delete_image.assert_called_once()

    def test_docker_missing_recorded(self, tmp_path: Path):
        images = MagicMock()
        images.present.side_effect = DependencyMissingError("docker")

        failures = purge_local_artifacts(
            TeardownConfig(source_dir=tmp_path), images, MagicMock(), _yes
        )

        assert [f.target for f in failures] == ["local_image"]
        images.remove.assert_not_called()
