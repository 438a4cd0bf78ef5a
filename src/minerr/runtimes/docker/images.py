"""Server image resolution.

Minecraft versions need different Java runtimes. The image family ships
one tag per runtime, so a version maps to a tag through its
``major.minor`` prefix.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING

from minerr.infra import ImageAPI, ImagePullError
from minerr.logging_schema import LogEvent

if TYPE_CHECKING:
    from minerr.config import RuntimeConfig

logger = logging.getLogger(__name__)

VERSION_IMAGE_TAGS = MappingProxyType(
    {
        "1.7": "java8",
        "1.8": "java8",
        "1.9": "java8",
        "1.10": "java8",
        "1.11": "java8",
        "1.12": "java8",
        "1.13": "java8",
        "1.14": "java8",
        "1.15": "java8",
        "1.16": "java8",
        "1.17": "java16",
        "1.18": "java17",
        "1.19": "java17",
        "1.20": "java17",
        "1.21": "java21",
    }
)

DEFAULT_IMAGE_TAG = "java21"


def version_prefix(version: str) -> str:
    """Return the ``major.minor`` part of a version string."""
    return ".".join(version.split(".")[:2])


def resolve_image_tag(version: str, default: str = DEFAULT_IMAGE_TAG) -> str:
    """Map a server version to its runtime tag.

    Unknown prefixes get ``default`` instead of failing: an unrecognized
    but plausible version most likely needs the newest runtime.
    """
    return VERSION_IMAGE_TAGS.get(version_prefix(version), default)


class ImageResolver:
    """Resolves versions to image references and makes them available locally."""

    def __init__(self, config: RuntimeConfig, images: ImageAPI | None = None) -> None:
        self._config = config
        self._images = images or ImageAPI()

    def resolve(self, version: str) -> str:
        """Return the concrete ``repo:tag`` reference for a version."""
        tag = resolve_image_tag(version, self._config.default_tag)
        return f"{self._config.image_repository}:{tag}"

    async def ensure(self, version: str) -> str:
        """Resolve a version and pull the image if it is not present.

        The pull is attempted once and blocks until it finishes.

        Raises:
            ImagePullError: The image is absent and could not be pulled.
        """
        image_ref = self.resolve(version)
        local = await self._images.list(reference=self._config.image_repository)
        local_tags = {tag for image in local for tag in image.get("RepoTags") or []}

        if image_ref in local_tags:
            logger.debug(
                "Image present",
                extra={"event": LogEvent.IMAGE_RESOLVED, "image": image_ref, "version": version},
            )
            return image_ref

        try:
            await self._images.pull(image_ref)
        except ImagePullError as e:
            logger.warning(
                "Image pull failed",
                extra={"event": LogEvent.IMAGE_PULL_FAILED, "image": image_ref, "error": str(e)},
            )
            raise

        logger.info(
            "Pulled image",
            extra={"event": LogEvent.IMAGE_PULLED, "image": image_ref, "version": version},
        )
        return image_ref
