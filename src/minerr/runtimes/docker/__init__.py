"""Docker runtime for Minerr."""

from minerr.config import MinerrConfig, get_config
from minerr.infra import ContainerAPI, DockerClient, ImageAPI, get_docker_client
from minerr.runtimes.docker.actions import ActionExecutor
from minerr.runtimes.docker.commands import CommandRelay
from minerr.runtimes.docker.images import ImageResolver
from minerr.runtimes.docker.instances import InstanceInspector
from minerr.runtimes.docker.logs import LogCursor, LogTailPoller
from minerr.runtimes.docker.naming import ResourceNaming
from minerr.runtimes.docker.provisioner import InstanceProvisioner


class DockerRuntime:
    """Docker runtime combining provisioning, actions, commands and log tailing.

    All components share one Docker client handle and hold no other
    shared state.
    """

    def __init__(
        self,
        config: MinerrConfig | None = None,
        client: DockerClient | None = None,
    ) -> None:
        self._config = config or get_config()
        self._naming = ResourceNaming(self._config.runtime)

        docker = client or get_docker_client()
        containers = ContainerAPI(docker)

        self.inspector = InstanceInspector(self._naming, containers)
        self.images = ImageResolver(self._config.runtime, ImageAPI(docker))
        self.provisioner = InstanceProvisioner(
            self._config.runtime,
            self._naming,
            self.images,
            self.inspector,
            containers,
        )
        self.commands = CommandRelay(self._config, containers)
        self.actions = ActionExecutor(self.commands, containers)
        self.logs = LogTailPoller(self._config.logs, containers)

    async def close(self) -> None:
        """Release runtime resources (pending command executions)."""
        await self.commands.close()


__all__ = [
    "ActionExecutor",
    "CommandRelay",
    "DockerRuntime",
    "ImageResolver",
    "InstanceInspector",
    "InstanceProvisioner",
    "LogCursor",
    "LogTailPoller",
    "ResourceNaming",
]
