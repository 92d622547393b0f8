"""Removal of local build output and images after a teardown."""

from __future__ import annotations

import shutil

import structlog

from aca_deployer.artifacts.image import ContainerRegistry, DockerImages, ImageReference
from aca_deployer.config.models import TeardownConfig
from aca_deployer.errors import CommandError, DependencyMissingError, TeardownStepError
from aca_deployer.provisioning.teardown import Confirm

logger = structlog.get_logger()


def purge_local_artifacts(
    config: TeardownConfig,
    images: DockerImages,
    registry: ContainerRegistry,
    confirm: Confirm,
) -> list[TeardownStepError]:
    """Delete the compiled output, the local image and the registry image.

    Each removal is confirmed separately, and a failure never stops the
    ones after it.
    """
    failures: list[TeardownStepError] = []

    compiled = config.compiled_dir
    if compiled.is_dir() and confirm(f"Delete local compiled output at '{compiled}'?"):
        logger.info("purge.compiled_output_removing", path=str(compiled))
        try:
            shutil.rmtree(compiled)
        except OSError as exc:
            failures.append(_failed("compiled_output", str(compiled), exc))

    try:
        present = images.present(config.image)
    except DependencyMissingError as exc:
        failures.append(_failed("local_image", config.image, exc))
        present = False
    if present and confirm(f"Remove local Docker image '{config.image}'?"):
        logger.info("purge.local_image_removing", image=config.image)
        try:
            images.remove(config.image)
        except CommandError as exc:
            failures.append(_failed("local_image", config.image, exc))

    image = ImageReference.parse(config.image)
    if image.acr_name is not None and confirm(
        f"Delete image '{config.image}' from Azure Container Registry "
        f"'{image.acr_name}'?"
    ):
        logger.info("purge.registry_image_deleting", image=config.image)
        try:
            registry.login(image.acr_name)
            registry.delete_image(image.acr_name, image.registry_image)
        except CommandError as exc:
            failures.append(_failed("registry_image", config.image, exc))

    return failures


def _failed(target: str, name: str, exc: Exception) -> TeardownStepError:
    logger.error("purge.step_failed", target=target, name=name, error=str(exc))
    return TeardownStepError(target, name, exc)
