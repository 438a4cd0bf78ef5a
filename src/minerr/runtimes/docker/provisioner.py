"""Game server provisioning for Docker runtime."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from minerr.api.errors import (
    ImageUnavailableError,
    PortConflictError,
    ProvisionFailedError,
)
from minerr.infra import (
    ContainerAPI,
    ContainerConfig,
    HostConfig,
    ImagePullError,
    docker_error_message,
)
from minerr.logging_schema import LogEvent
from minerr.metrics import MINERR_PROVISION_TOTAL
from minerr.runtimes.docker.environment import build_environment

if TYPE_CHECKING:
    from minerr.config import RuntimeConfig
    from minerr.runtimes.docker.images import ImageResolver
    from minerr.runtimes.docker.instances import InstanceInspector
    from minerr.runtimes.docker.models import CreationRequest, InstanceDescriptor
    from minerr.runtimes.docker.naming import ResourceNaming

logger = logging.getLogger(__name__)

# Daemon messages for a host port that is already bound
_PORT_CONFLICT_MARKERS = (
    "port is already allocated",
    "address already in use",
)


def is_port_conflict(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _PORT_CONFLICT_MARKERS)


class InstanceProvisioner:
    """Creates and starts new game server containers.

    A failure after the container was created leaves it as the runtime
    left it; nothing is rolled back.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        naming: ResourceNaming,
        resolver: ImageResolver,
        inspector: InstanceInspector,
        containers: ContainerAPI | None = None,
    ) -> None:
        self._config = config
        self._naming = naming
        self._resolver = resolver
        self._inspector = inspector
        self._containers = containers or ContainerAPI()

    async def create(self, request: CreationRequest) -> InstanceDescriptor:
        """Provision a server and return its inspected descriptor.

        Raises:
            ImageUnavailableError: The server image could not be pulled.
            PortConflictError: The requested host port is already bound.
            ProvisionFailedError: Any other runtime failure.
        """
        try:
            image = await self._resolver.ensure(request.version)
        except (ImagePullError, httpx.HTTPError) as e:
            MINERR_PROVISION_TOTAL.labels(result="image_unavailable").inc()
            raise ImageUnavailableError(
                f"Image for version {request.version} unavailable: {docker_error_message(e)}"
            ) from e

        env = build_environment(request, self._config)
        name = self._naming.container_name(request.name)
        port_key = self._naming.port_key

        container_config = ContainerConfig(
            image=image,
            name=name,
            env=env,
            tty=True,
            open_stdin=True,
            exposed_ports={port_key: {}},
            labels={self._config.managed_label: "true"},
            host_config=HostConfig(
                port_bindings={port_key: [{"HostPort": str(request.port)}]},
            ),
        )

        try:
            container_id = await self._containers.create(container_config)
            await self._containers.start(container_id)
            descriptor = await self._inspector.describe(container_id)
        except httpx.HTTPError as e:
            raise self._provision_error(name, request.port, e) from e

        if descriptor is None:
            MINERR_PROVISION_TOTAL.labels(result="failed").inc()
            raise ProvisionFailedError(f"Server {name} disappeared after start")

        MINERR_PROVISION_TOTAL.labels(result="success").inc()
        logger.info(
            "Created and started server",
            extra={
                "event": LogEvent.CONTAINER_STARTED,
                "container": name,
                "container_id": container_id,
                "image": image,
                "port": request.port,
            },
        )
        return descriptor

    def _provision_error(
        self, name: str, port: int, exc: httpx.HTTPError
    ) -> PortConflictError | ProvisionFailedError:
        message = docker_error_message(exc)
        if is_port_conflict(message):
            MINERR_PROVISION_TOTAL.labels(result="port_conflict").inc()
            logger.warning(
                "Host port already bound",
                extra={"event": LogEvent.PORT_CONFLICT, "container": name, "port": port},
            )
            return PortConflictError(port)

        MINERR_PROVISION_TOTAL.labels(result="failed").inc()
        logger.error(
            "Failed to provision server",
            extra={"event": LogEvent.PROVISION_FAILED, "container": name, "error": message},
        )
        return ProvisionFailedError(message)