"""Unit tests for Server API endpoints."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from minerr.api.errors import (
    CommandNotFoundError,
    CommandRejectedError,
    ImageUnavailableError,
    LogFetchFailedError,
    PortConflictError,
    ProvisionFailedError,
)
from minerr.api.v1.servers import _log_events
from minerr.runtimes.docker.logs import LogCursor
from minerr.runtimes.docker.models import (
    CommandAction,
    CreationRequest,
    InstanceDescriptor,
    LogFrame,
    PauseAction,
)
from minerr.runtimes.docker.result import ActionResult, CommandTicket


def _frames(*frames: LogFrame):
    async def stream(cursor: LogCursor, disconnected=None):
        for frame in frames:
            yield frame

    return stream


def _sse_payloads(body: str) -> list[dict]:
    return [
        json.loads(chunk.removeprefix("data: "))
        for chunk in body.split("\n\n")
        if chunk.startswith("data: ")
    ]


class TestListServers:
    def test_empty(
        self, client: TestClient, auth_headers: dict[str, str]
    ) -> None:
        response = client.get("/api/servers", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"servers": []}

    def test_with_data(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
        descriptor: InstanceDescriptor,
    ) -> None:
        mock_runtime.inspector.list_all.return_value = [descriptor]

        response = client.get("/api/servers", headers=auth_headers)

        assert response.status_code == 200
        servers = response.json()["servers"]
        assert len(servers) == 1
        assert servers[0]["id"] == "abc123"
        assert servers[0]["status"] == "running"
        assert servers[0]["port"] == 25565


class TestCreateServer:
    def test_created(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        response = client.post(
            "/api/servers/create",
            headers=auth_headers,
            json={"name": "Survival", "memory": 2048, "port": 25565, "version": "1.20.1"},
        )

        assert response.status_code == 201
        assert response.json()["name"] == "minerr-survival-1700000000000"
        request: CreationRequest = mock_runtime.provisioner.create.call_args.args[0]
        assert request.memory == 2048

    def test_invalid_version_never_reaches_runtime(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        response = client.post(
            "/api/servers/create",
            headers=auth_headers,
            json={"name": "s", "version": "1.20"},
        )

        assert response.status_code == 422
        mock_runtime.provisioner.create.assert_not_called()

    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (PortConflictError(25565), 409, "PORT_CONFLICT"),
            (ImageUnavailableError("manifest unknown"), 502, "IMAGE_UNAVAILABLE"),
            (ProvisionFailedError("no space left on device"), 500, "PROVISION_FAILED"),
        ],
    )
    def test_provisioning_errors(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
        error: Exception,
        status: int,
        code: str,
    ) -> None:
        mock_runtime.provisioner.create.side_effect = error

        response = client.post("/api/servers/create", headers=auth_headers, json={"name": "s"})

        assert response.status_code == status
        assert response.json()["error"]["code"] == code

    def test_port_conflict_names_port(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.provisioner.create.side_effect = PortConflictError(25565)

        response = client.post("/api/servers/create", headers=auth_headers, json={"name": "s"})

        assert response.json() == {
            "error": {"code": "PORT_CONFLICT", "message": "Port 25565 is already in use"}
        }


class TestPerformAction:
    def test_dispatches_parsed_action(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.actions.execute.return_value = ActionResult(
            success=True, message="Server abc123 paused successfully"
        )

        response = client.post(
            "/api/servers/abc123/action", headers=auth_headers, json={"action": "pause"}
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        server_id, action = mock_runtime.actions.execute.call_args.args
        assert server_id == "abc123"
        assert isinstance(action, PauseAction)

    def test_failure_is_a_result(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.actions.execute.return_value = ActionResult(
            success=False,
            message="Action pause failed on abc123: Container abc123 is not running",
        )

        response = client.post(
            "/api/servers/abc123/action", headers=auth_headers, json={"action": "pause"}
        )

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert "pause" in response.json()["message"]

    def test_command_returns_ticket_id(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.actions.execute.return_value = ActionResult(
            success=True, message="Command dispatched to abc123", command_id="c1"
        )

        response = client.post(
            "/api/servers/abc123/action",
            headers=auth_headers,
            json={"action": "command", "parameter": "say hi"},
        )

        assert response.json()["command_id"] == "c1"
        action = mock_runtime.actions.execute.call_args.args[1]
        assert isinstance(action, CommandAction)
        assert action.parameter == "say hi"

    def test_empty_command_rejected(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.actions.execute.side_effect = CommandRejectedError()

        response = client.post(
            "/api/servers/abc123/action",
            headers=auth_headers,
            json={"action": "command", "parameter": ""},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "COMMAND_REJECTED"

    def test_unknown_action(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        response = client.post(
            "/api/servers/abc123/action", headers=auth_headers, json={"action": "explode"}
        )

        assert response.status_code == 422
        mock_runtime.actions.execute.assert_not_called()


class TestGetCommand:
    def test_found(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.commands.get.return_value = CommandTicket(
            id="c1",
            instance_id="abc123",
            command=["list"],
            created_at=datetime.now(timezone.utc),
        )

        response = client.get("/api/servers/abc123/commands/c1", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["state"] == "pending"
        mock_runtime.commands.get.assert_called_once_with("abc123", "c1")

    def test_not_found(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.commands.get.side_effect = CommandNotFoundError()

        response = client.get("/api/servers/abc123/commands/nope", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "COMMAND_NOT_FOUND"


class TestStreamLogs:
    def test_missing_server(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        auth_headers: dict[str, str],
    ) -> None:
        mock_runtime.logs.open.side_effect = LogFetchFailedError()

        response = client.get("/api/servers/gone/logs", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LOG_FETCH_FAILED"

    def test_streams_frames_with_query_token(
        self,
        client: TestClient,
        mock_runtime: MagicMock,
        token: str,
    ) -> None:
        mock_runtime.logs.open.return_value = LogCursor(instance_id="abc123")
        mock_runtime.logs.stream = _frames(
            LogFrame(data=["Starting"], index=0),
            LogFrame(data=["Starting", "Done"], index=1),
        )

        response = client.get("/api/servers/abc123/logs", params={"access_token": token})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert _sse_payloads(response.text) == [
            {"data": ["Starting"], "index": 0},
            {"data": ["Starting", "Done"], "index": 1},
        ]

    def test_requires_token(self, client: TestClient, mock_runtime: MagicMock) -> None:
        response = client.get("/api/servers/abc123/logs")

        assert response.status_code == 401
        mock_runtime.logs.open.assert_not_called()


class TestLogEvents:
    async def test_stream_watches_client_disconnect(self) -> None:
        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, False, True])
        closed = []

        async def stream(cursor: LogCursor, disconnected=None):
            try:
                index = 0
                while not await disconnected():
                    yield LogFrame(data=[str(index)], index=index)
                    index += 1
            finally:
                closed.append(cursor.instance_id)

        poller = MagicMock()
        poller.stream = stream

        messages = [
            message
            async for message in _log_events(request, poller, LogCursor(instance_id="abc123"))
        ]

        assert messages == [
            'data: {"data":["0"],"index":0}\n\n',
            'data: {"data":["1"],"index":1}\n\n',
        ]
        assert closed == ["abc123"]
