"""Local container image preparation: build if missing, push if remote."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from aca_deployer.azure.cli import AzureCLI
from aca_deployer.errors import BuildError, CommandError, ConfigError, PublishError
from aca_deployer.shell import run_command

logger = structlog.get_logger()

ACR_SUFFIX = ".azurecr.io"


@dataclass(frozen=True)
class ImageReference:
    """An image reference split into base name, tag and registry parts.

    A reference pinned by content (``repo@sha256:...``) keeps its digest in
    ``digest``; such images can be pulled or deleted but never built locally.
    """

    reference: str
    base_name: str
    tag: str
    registry_host: str | None
    repository: str
    digest: str | None = None

    @classmethod
    def parse(cls, reference: str) -> ImageReference:
        """Split ``[host[:port]/]repo[:tag][@digest]``.

        The tag defaults to ``latest``.
        """
        name, at, digest = reference.partition("@")
        base, sep, tag = name.rpartition(":")
        # No colon at all, or the colon belonged to a registry port.
        if not sep or "/" in tag:
            base, tag = name, "latest"
        pinned = digest if at else None
        host, slash, rest = base.partition("/")
        if slash and ("." in host or ":" in host or host == "localhost"):
            return cls(reference, base, tag, host, rest, pinned)
        return cls(reference, base, tag, None, base, pinned)

    @property
    def acr_name(self) -> str | None:
        """Azure Container Registry name when the host is ``<name>.azurecr.io``."""
        if self.registry_host and self.registry_host.endswith(ACR_SUFFIX):
            return self.registry_host.split(".", 1)[0]
        return None

    @property
    def registry_image(self) -> str:
        """``repository@digest`` or ``repository:tag``, as the registry names it."""
        if self.digest:
            return f"{self.repository}@{self.digest}"
        return f"{self.repository}:{self.tag}"


class DockerImages:
    """Local image store, via the Docker CLI."""

    def __init__(self, executable: str = "docker") -> None:
        self._executable = executable

    def present(self, reference: str) -> bool:
        result = run_command(
            [self._executable, "image", "inspect", reference], check=False
        )
        return result.returncode == 0

    def push(self, reference: str) -> None:
        run_command([self._executable, "push", reference])

    def remove(self, reference: str) -> None:
        run_command([self._executable, "rmi", reference])


class ContainerRegistry:
    """Azure Container Registry operations used for publish and purge."""

    def __init__(self, cli: AzureCLI) -> None:
        self._cli = cli

    def login(self, name: str) -> None:
        self._cli.run("acr", "login", "--name", name)

    def delete_image(self, name: str, image: str) -> None:
        self._cli.run(
            "acr", "repository", "delete",
            "--name", name,
            "--image", image,
            "--yes",
        )  # fmt: skip


class SourceBuilder:
    """Two-phase build: compile the sources, then package them as an image.

    Both phases are node scripts shipped in ``<source_dir>/scripts``; the
    packaging script reads the image name from ``IMAGE_BASE_NAME`` and
    ``IMAGE_TAG``.
    """

    BUILD_SCRIPT = "build-n8n.mjs"
    PACKAGE_SCRIPT = "dockerize-n8n.mjs"

    def __init__(self, source_dir: Path, node: str = "node") -> None:
        self._source_dir = source_dir
        self._node = node

    @property
    def scripts_dir(self) -> Path:
        return self._source_dir / "scripts"

    def compile(self) -> None:
        run_command(
            [self._node, str(self.scripts_dir / self.BUILD_SCRIPT)],
            cwd=self._source_dir,
        )

    def package(self, base_name: str, tag: str) -> None:
        run_command(
            [self._node, str(self.scripts_dir / self.PACKAGE_SCRIPT)],
            env={"IMAGE_BASE_NAME": base_name, "IMAGE_TAG": tag},
            cwd=self._source_dir,
        )


class LocalArtifactPreparer:
    """Makes sure the deployable image exists before any cloud call is made."""

    def __init__(
        self,
        images: DockerImages,
        builder: SourceBuilder,
        registry: ContainerRegistry,
        *,
        allow_build: bool = True,
    ) -> None:
        self._images = images
        self._builder = builder
        self._registry = registry
        self._allow_build = allow_build

    def prepare(self, reference: str) -> ImageReference:
        """Ensure *reference* is available locally, building and pushing it if needed.

        Raises:
            ConfigError: the image is missing and local builds are disabled,
                or it is missing and pinned by digest.
            BuildError: the build failed or did not produce the image.
            PublishError: pushing a registry image failed.
        """
        image = ImageReference.parse(reference)
        if self._images.present(reference):
            logger.info("image.present_locally", image=reference)
            return image

        if image.digest is not None:
            msg = (
                f"Image '{reference}' is pinned by digest and not present "
                "locally; a local build cannot produce a given digest."
            )
            raise ConfigError(msg, field="image")

        if not self._allow_build:
            msg = (
                f"Image '{reference}' not found locally and "
                "BUILD_LOCAL_IMAGE=false; aborting."
            )
            raise ConfigError(msg, field="image")

        logger.info("image.building", image=reference, tag=image.tag)
        try:
            self._builder.compile()
            self._builder.package(image.base_name, image.tag)
        except CommandError as exc:
            msg = f"Local build of image '{reference}' failed: {exc}"
            raise BuildError(msg) from exc

        if not self._images.present(reference):
            msg = f"Local build finished but image '{reference}' is still missing"
            raise BuildError(msg)
        logger.info("image.built", image=reference)

        if image.acr_name is not None:
            self._publish(image, image.acr_name)
        return image

    def _publish(self, image: ImageReference, registry_name: str) -> None:
        logger.info("image.pushing", image=image.reference, registry=registry_name)
        try:
            self._registry.login(registry_name)
            self._images.push(image.reference)
        except CommandError as exc:
            msg = f"Failed to push image '{image.reference}' to '{registry_name}': {exc}"
            raise PublishError(msg) from exc
        logger.info("image.pushed", image=image.reference, registry=registry_name)
