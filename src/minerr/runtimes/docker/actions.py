"""Lifecycle actions for existing game server containers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

import httpx

from minerr.infra import ContainerAPI, docker_error_message
from minerr.logging_schema import LogEvent
from minerr.metrics import MINERR_ACTIONS_TOTAL
from minerr.runtimes.docker.models import (
    CommandAction,
    DeleteAction,
    PauseAction,
    RestartAction,
    StartAction,
)
from minerr.runtimes.docker.result import ActionResult

if TYPE_CHECKING:
    from minerr.runtimes.docker.commands import CommandRelay
    from minerr.runtimes.docker.models import Action

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Applies lifecycle actions to an instance by id.

    No local state is checked or kept. Preconditions such as "pause only
    a running server" are enforced by the runtime, whose refusal comes
    back as a failed result.
    """

    def __init__(
        self,
        commands: CommandRelay,
        containers: ContainerAPI | None = None,
    ) -> None:
        self._commands = commands
        self._containers = containers or ContainerAPI()

    async def execute(self, instance_id: str, action: Action) -> ActionResult:
        """Apply an action and report the outcome.

        Runtime failures are returned as ``success=False`` with the message
        ``Action <action> failed on <id>: <cause>``.

        Raises:
            CommandRejectedError: Empty console command.
        """
        name = action.action
        try:
            result = await self._apply(instance_id, action)
        except httpx.HTTPError as e:
            cause = docker_error_message(e)
            MINERR_ACTIONS_TOTAL.labels(action=name, result="failure").inc()
            logger.warning(
                "Action failed",
                extra={
                    "event": LogEvent.ACTION_FAILED,
                    "action": name,
                    "container_id": instance_id,
                    "error": cause,
                },
            )
            return ActionResult(
                success=False,
                message=f"Action {name} failed on {instance_id}: {cause}",
            )

        MINERR_ACTIONS_TOTAL.labels(action=name, result="success").inc()
        logger.info(
            "Action completed",
            extra={"event": LogEvent.ACTION_COMPLETED, "action": name, "container_id": instance_id},
        )
        return result

    async def _apply(self, instance_id: str, action: Action) -> ActionResult:
        match action:
            case StartAction():
                await self._start(instance_id)
                return ActionResult(success=True, message=f"Server {instance_id} started successfully")
            case PauseAction():
                await self._containers.pause(instance_id)
                return ActionResult(success=True, message=f"Server {instance_id} paused successfully")
            case RestartAction():
                await self._containers.restart(instance_id)
                return ActionResult(success=True, message=f"Server {instance_id} restarted successfully")
            case DeleteAction():
                await self._containers.remove(instance_id, force=True)
                return ActionResult(success=True, message=f"Server {instance_id} deleted successfully")
            case CommandAction(parameter=parameter):
                ticket = await self._commands.dispatch(instance_id, parameter)
                return ActionResult(
                    success=True,
                    message=f"Command dispatched to {instance_id}",
                    command_id=ticket.id,
                )
            case _:
                assert_never(action)

    async def _start(self, instance_id: str) -> None:
        """Start, falling back to unpause for a paused container."""
        try:
            await self._containers.start(instance_id)
        except httpx.HTTPStatusError as e:
            if "paused" not in docker_error_message(e).lower():
                raise
            logger.debug("Container is paused, unpausing", extra={"container_id": instance_id})
            await self._containers.unpause(instance_id)
