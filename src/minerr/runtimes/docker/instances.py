"""Instance inspection for Docker runtime.

Descriptors are built from live runtime queries only. The runtime is the
single source of truth for instance state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from minerr.infra import ContainerAPI, docker_error_message
from minerr.metrics import MINERR_CONTAINERS_TOTAL
from minerr.runtimes.docker.models import InstanceDescriptor, InstanceState, ResourceUsage

if TYPE_CHECKING:
    from minerr.runtimes.docker.naming import ResourceNaming

logger = logging.getLogger(__name__)

_STATS_STATES = (InstanceState.RUNNING, InstanceState.PAUSED)


def parse_usage(stats: dict) -> ResourceUsage | None:
    """Extract memory usage from a stats snapshot.

    Page cache is excluded the same way ``docker stats`` does it
    (``inactive_file`` on cgroup v2, ``cache`` on v1).
    """
    memory = stats.get("memory_stats") or {}
    if "usage" not in memory:
        return None
    details = memory.get("stats") or {}
    cache = details.get("inactive_file", details.get("cache", 0))
    return ResourceUsage(
        memory_used=max(memory["usage"] - cache, 0),
        memory_limit=memory.get("limit", 0),
    )


class InstanceInspector:
    """Builds instance descriptors from the container runtime."""

    def __init__(
        self,
        naming: ResourceNaming,
        containers: ContainerAPI | None = None,
    ) -> None:
        self._naming = naming
        self._containers = containers or ContainerAPI()

    def to_descriptor(
        self, data: dict, usage: ResourceUsage | None = None
    ) -> InstanceDescriptor:
        """Convert a container inspect payload."""
        config = data.get("Config") or {}
        host_config = data.get("HostConfig") or {}
        bindings = (host_config.get("PortBindings") or {}).get(self._naming.port_key) or []

        port = None
        if bindings and bindings[0].get("HostPort"):
            port = int(bindings[0]["HostPort"])

        return InstanceDescriptor(
            id=data["Id"],
            name=data.get("Name", "").lstrip("/"),
            image=config.get("Image", ""),
            env=config.get("Env") or [],
            status=InstanceState.from_runtime((data.get("State") or {}).get("Status")),
            port=port,
            usage=usage,
        )

    async def describe(
        self, container_id: str, with_usage: bool = False
    ) -> InstanceDescriptor | None:
        """Inspect one container. Returns None if it no longer exists."""
        data = await self._containers.inspect(container_id)
        if data is None:
            return None

        descriptor = self.to_descriptor(data)
        if with_usage and descriptor.status in _STATS_STATES:
            descriptor.usage = await self._usage(container_id)
        return descriptor

    async def list_all(self) -> list[InstanceDescriptor]:
        """List all containers of the managed image family with live stats."""
        containers = await self._containers.list()
        ids = [
            c["Id"] for c in containers if self._naming.is_managed_image(c.get("Image", ""))
        ]

        descriptors = await asyncio.gather(
            *[self.describe(container_id, with_usage=True) for container_id in ids]
        )
        # Containers removed between list and inspect are skipped
        results = [d for d in descriptors if d is not None]
        MINERR_CONTAINERS_TOTAL.set(len(results))
        return results

    async def _usage(self, container_id: str) -> ResourceUsage | None:
        try:
            stats = await self._containers.stats(container_id)
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to read container stats",
                extra={"container": container_id, "error": docker_error_message(e)},
            )
            return None
        return parse_usage(stats)
