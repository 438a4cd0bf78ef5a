"""Server API endpoints.

Every endpoint reads live state from the container runtime; nothing is
cached between requests.
"""

from contextlib import aclosing
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from minerr.api.auth import CurrentUser, StreamUser
from minerr.api.dependencies import get_runtime
from minerr.runtimes import DockerRuntime
from minerr.runtimes.docker.logs import LogCursor, LogTailPoller
from minerr.runtimes.docker.models import (
    ActionRequest,
    CreationRequest,
    InstanceDescriptor,
)
from minerr.runtimes.docker.result import ActionResult, CommandTicket

router = APIRouter(prefix="/servers", tags=["servers"])


class ServerListResponse(BaseModel):
    """Server list response."""

    servers: list[InstanceDescriptor]


@router.get("", response_model=ServerListResponse)
async def list_servers(
    _user: CurrentUser,
    runtime: DockerRuntime = Depends(get_runtime),
) -> ServerListResponse:
    """List all managed servers with live resource usage."""
    servers = await runtime.inspector.list_all()
    return ServerListResponse(servers=servers)


@router.post("/create", status_code=201, response_model=InstanceDescriptor)
async def create_server(
    body: CreationRequest,
    _user: CurrentUser,
    runtime: DockerRuntime = Depends(get_runtime),
) -> InstanceDescriptor:
    """Create and start a new server."""
    return await runtime.provisioner.create(body)


@router.post("/{server_id}/action", response_model=ActionResult)
async def perform_action(
    server_id: str,
    body: ActionRequest,
    _user: CurrentUser,
    runtime: DockerRuntime = Depends(get_runtime),
) -> ActionResult:
    """Apply a lifecycle action.

    Runtime failures come back as ``success: false``. For ``command`` a
    successful result only means the command was dispatched; poll the
    returned ``command_id`` for its outcome.
    """
    return await runtime.actions.execute(server_id, body.root)


@router.get("/{server_id}/commands/{command_id}", response_model=CommandTicket)
async def get_command(
    server_id: str,
    command_id: str,
    _user: CurrentUser,
    runtime: DockerRuntime = Depends(get_runtime),
) -> CommandTicket:
    """Get status and output of a dispatched console command."""
    return runtime.commands.get(server_id, command_id)


async def _log_events(
    request: Request,
    poller: LogTailPoller,
    cursor: LogCursor,
) -> AsyncGenerator[str, None]:
    """Format log frames as SSE messages until the client disconnects."""
    async with aclosing(poller.stream(cursor, request.is_disconnected)) as frames:
        async for frame in frames:
            yield f"data: {frame.model_dump_json()}\n\n"


@router.get("/{server_id}/logs")
async def stream_logs(
    server_id: str,
    request: Request,
    _user: StreamUser,
    runtime: DockerRuntime = Depends(get_runtime),
) -> StreamingResponse:
    """SSE stream of the server's combined output.

    Each message is ``{"data": [lines...], "index": n}`` and is only sent
    when the tail window changed. Accepts ``?access_token=`` because
    EventSource cannot set headers.
    """
    cursor = await runtime.logs.open(server_id)

    return StreamingResponse(
        _log_events(request, runtime.logs, cursor),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
