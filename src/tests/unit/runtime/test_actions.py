"""Unit tests for ActionExecutor."""

from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from minerr.api.errors import CommandRejectedError
from minerr.config import MinerrConfig
from minerr.runtimes.docker.actions import ActionExecutor
from minerr.runtimes.docker.commands import CommandRelay
from minerr.runtimes.docker.models import (
    CommandAction,
    DeleteAction,
    PauseAction,
    RestartAction,
    StartAction,
)

DockerError = Callable[[int, str], httpx.HTTPStatusError]


class TestActionExecutor:
    """Tests for ActionExecutor."""

    @pytest.fixture
    async def relay(self, config: MinerrConfig, mock_container_api: AsyncMock):
        relay = CommandRelay(config, mock_container_api)
        yield relay
        await relay.close()

    @pytest.fixture
    def executor(self, relay: CommandRelay, mock_container_api: AsyncMock) -> ActionExecutor:
        return ActionExecutor(relay, mock_container_api)

    @pytest.mark.parametrize(
        ("action", "method", "verb"),
        [
            (StartAction(), "start", "started"),
            (PauseAction(), "pause", "paused"),
            (RestartAction(), "restart", "restarted"),
            (DeleteAction(), "remove", "deleted"),
        ],
    )
    async def test_lifecycle_actions(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        action,
        method: str,
        verb: str,
    ) -> None:
        result = await executor.execute("abc123", action)

        assert result.success is True
        assert result.message == f"Server abc123 {verb} successfully"
        assert result.command_id is None
        getattr(mock_container_api, method).assert_called_once()

    async def test_delete_is_forced(
        self, executor: ActionExecutor, mock_container_api: AsyncMock
    ) -> None:
        await executor.execute("abc123", DeleteAction())

        mock_container_api.remove.assert_called_once_with("abc123", force=True)

    async def test_pause_not_running_is_reported(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        docker_error: DockerError,
    ) -> None:
        mock_container_api.pause.side_effect = docker_error(
            409, "Container abc123 is not running"
        )

        result = await executor.execute("abc123", PauseAction())

        assert result.success is False
        assert result.message == (
            "Action pause failed on abc123: Container abc123 is not running"
        )

    async def test_missing_container_is_reported(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        docker_error: DockerError,
    ) -> None:
        mock_container_api.restart.side_effect = docker_error(404, "No such container: gone")

        result = await executor.execute("gone", RestartAction())

        assert result.success is False
        assert "restart" in result.message
        assert "gone" in result.message

    async def test_transport_failure_is_reported(
        self, executor: ActionExecutor, mock_container_api: AsyncMock
    ) -> None:
        mock_container_api.remove.side_effect = httpx.ConnectError("daemon down")

        result = await executor.execute("abc123", DeleteAction())

        assert result.success is False
        assert result.message.endswith("daemon down")

    async def test_start_paused_container_unpauses(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        docker_error: DockerError,
    ) -> None:
        mock_container_api.start.side_effect = docker_error(
            409, "cannot start a paused container, try unpause instead"
        )

        result = await executor.execute("abc123", StartAction())

        assert result.success is True
        mock_container_api.unpause.assert_called_once_with("abc123")

    async def test_start_other_failure_does_not_unpause(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        docker_error: DockerError,
    ) -> None:
        mock_container_api.start.side_effect = docker_error(500, "OCI runtime error")

        result = await executor.execute("abc123", StartAction())

        assert result.success is False
        mock_container_api.unpause.assert_not_called()

    async def test_command_is_dispatched(
        self, executor: ActionExecutor, mock_container_api: AsyncMock
    ) -> None:
        result = await executor.execute("abc123", CommandAction(parameter="/say hello"))

        assert result.success is True
        assert result.message == "Command dispatched to abc123"
        assert result.command_id is not None
        mock_container_api.exec_create.assert_called_once_with(
            "abc123", ["rcon-cli", "say", "hello"]
        )

    @pytest.mark.parametrize("parameter", [None, "", "   ", "/"])
    async def test_empty_command_is_rejected_without_runtime_call(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        parameter: str | None,
    ) -> None:
        with pytest.raises(CommandRejectedError):
            await executor.execute("abc123", CommandAction(parameter=parameter))

        mock_container_api.exec_create.assert_not_called()

    async def test_command_exec_failure_is_reported(
        self,
        executor: ActionExecutor,
        mock_container_api: AsyncMock,
        docker_error: DockerError,
    ) -> None:
        mock_container_api.exec_create.side_effect = docker_error(
            409, "Container abc123 is paused, unpause the container before exec"
        )

        result = await executor.execute("abc123", CommandAction(parameter="list"))

        assert result.success is False
        assert result.message.startswith("Action command failed on abc123:")
