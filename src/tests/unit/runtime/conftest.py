"""Fixtures for runtime unit tests."""

from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from minerr.config import LogStreamConfig, MinerrConfig, RuntimeConfig
from minerr.infra import ContainerAPI, ImageAPI
from minerr.runtimes.docker.instances import InstanceInspector
from minerr.runtimes.docker.models import InstanceDescriptor
from minerr.runtimes.docker.naming import ResourceNaming


def _docker_error(status_code: int, message: str) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://localhost/containers/abc/start")
    response = httpx.Response(status_code, json={"message": message}, request=request)
    return httpx.HTTPStatusError(message, request=request, response=response)


@pytest.fixture
def docker_error() -> Callable[[int, str], httpx.HTTPStatusError]:
    """Factory for the error httpx raises on a Docker API failure."""
    return _docker_error


@pytest.fixture
def mock_container_api() -> AsyncMock:
    """Mock ContainerAPI for testing."""
    api = AsyncMock(spec=ContainerAPI)
    api.list = AsyncMock(return_value=[])
    api.inspect = AsyncMock(return_value=None)
    api.create = AsyncMock(return_value="abc123")
    api.start = AsyncMock()
    api.pause = AsyncMock()
    api.unpause = AsyncMock()
    api.restart = AsyncMock()
    api.remove = AsyncMock()
    api.logs = AsyncMock(return_value=b"")
    api.stats = AsyncMock(return_value={})
    api.exec_create = AsyncMock(return_value="exec123")
    api.exec_start = AsyncMock(return_value=b"")
    api.exec_inspect = AsyncMock(return_value={"ExitCode": 0})
    return api


@pytest.fixture
def mock_image_api() -> AsyncMock:
    """Mock ImageAPI for testing."""
    api = AsyncMock(spec=ImageAPI)
    api.list = AsyncMock(return_value=[])
    api.pull = AsyncMock()
    return api


@pytest.fixture
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig()


@pytest.fixture
def log_config() -> LogStreamConfig:
    return LogStreamConfig(poll_interval=0, tail_lines=100)


@pytest.fixture
def config(runtime_config: RuntimeConfig) -> MinerrConfig:
    return MinerrConfig(runtime=runtime_config)


@pytest.fixture
def naming(runtime_config: RuntimeConfig) -> ResourceNaming:
    return ResourceNaming(runtime_config)


@pytest.fixture
def inspect_payload() -> dict:
    """Docker inspect payload of a running server."""
    return {
        "Id": "abc123",
        "Name": "/minerr-survival-1700000000000",
        "Config": {
            "Image": "itzg/minecraft-server:java17",
            "Env": ["EULA=TRUE", "VERSION=1.20.1"],
        },
        "State": {"Status": "running", "Running": True},
        "HostConfig": {"PortBindings": {"25565/tcp": [{"HostPort": "25565"}]}},
    }


@pytest.fixture
def mock_inspector(inspect_payload: dict) -> MagicMock:
    inspector = MagicMock(spec=InstanceInspector)
    inspector.describe = AsyncMock(
        return_value=InstanceDescriptor(
            id="abc123",
            name="minerr-survival-1700000000000",
            image="itzg/minecraft-server:java17",
            env=inspect_payload["Config"]["Env"],
            status="running",
            port=25565,
        )
    )
    return inspector
