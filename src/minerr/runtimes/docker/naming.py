"""Resource naming utilities for Docker runtime."""

import re
import time

from minerr.config import RuntimeConfig

_INVALID_CHARS = re.compile(r"[^a-z0-9_.-]+")


class ResourceNaming:
    """Centralized naming conventions for managed containers."""

    def __init__(self, config: RuntimeConfig) -> None:
        self._prefix = config.resource_prefix
        self._repository = config.image_repository
        self._port = config.container_port

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def port_key(self) -> str:
        """Docker port key of the game port, e.g. ``25565/tcp``."""
        return f"{self._port}/tcp"

    def container_name(self, display_name: str, now_ms: int | None = None) -> str:
        """Unique container name: display name slug plus creation timestamp."""
        if now_ms is None:
            now_ms = time.time_ns() // 1_000_000
        slug = _INVALID_CHARS.sub("-", display_name.lower()).strip("-.") or "server"
        return f"{self._prefix}{slug}-{now_ms}"

    def is_managed_image(self, image: str) -> bool:
        """Whether an image reference belongs to the managed image family."""
        return image == self._repository or image.startswith(f"{self._repository}:")
