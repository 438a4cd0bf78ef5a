"""Console command relay for Docker runtime.

Commands run through the image's console entry point in an exec session.
Dispatch returns as soon as the session is created; the session runs in a
background task and its outcome is recorded on a ticket that callers can
query later.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

import httpx

from minerr.api.errors import CommandNotFoundError, CommandRejectedError
from minerr.infra import ContainerAPI, decode_log_stream, docker_error_message
from minerr.logging_schema import LogEvent
from minerr.metrics import MINERR_COMMANDS_TOTAL
from minerr.runtimes.docker.result import CommandState, CommandTicket

if TYPE_CHECKING:
    from minerr.config import MinerrConfig

logger = logging.getLogger(__name__)


def parse_command(text: str | None) -> list[str]:
    """Trim, drop a leading ``/`` and split a console command on whitespace."""
    text = (text or "").strip()
    if text.startswith("/"):
        text = text[1:]
    return text.split()


class CommandRelay:
    """Dispatches console commands and tracks their completion."""

    def __init__(
        self,
        config: MinerrConfig,
        containers: ContainerAPI | None = None,
    ) -> None:
        self._entry_point = config.runtime.console_command
        self._history = config.runtime.command_history
        self._timeout = config.docker.exec_timeout
        self._containers = containers or ContainerAPI()
        self._tickets: OrderedDict[str, CommandTicket] = OrderedDict()
        self._tasks: set[asyncio.Task] = set()

    async def dispatch(self, instance_id: str, text: str | None) -> CommandTicket:
        """Start a console command without waiting for it to finish.

        Raises:
            CommandRejectedError: Command text is empty. The runtime is not contacted.
            httpx.HTTPError: The exec session could not be created.
        """
        args = parse_command(text)
        if not args:
            MINERR_COMMANDS_TOTAL.labels(state="rejected").inc()
            logger.info(
                "Rejected empty command",
                extra={"event": LogEvent.COMMAND_REJECTED, "container_id": instance_id},
            )
            raise CommandRejectedError()

        exec_id = await self._containers.exec_create(instance_id, [self._entry_point, *args])

        ticket = CommandTicket(
            id=uuid4().hex,
            instance_id=instance_id,
            command=args,
            created_at=datetime.now(timezone.utc),
        )
        self._remember(ticket)

        task = asyncio.create_task(self._run(ticket, exec_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "Dispatched command",
            extra={
                "event": LogEvent.COMMAND_DISPATCHED,
                "container_id": instance_id,
                "command_id": ticket.id,
                "command": args[0],
            },
        )
        return ticket

    def get(self, instance_id: str, command_id: str) -> CommandTicket:
        """Look up a dispatched command.

        Raises:
            CommandNotFoundError: Unknown id, evicted, or belongs to another instance.
        """
        ticket = self._tickets.get(command_id)
        if ticket is None or ticket.instance_id != instance_id:
            raise CommandNotFoundError()
        return ticket

    async def close(self) -> None:
        """Cancel commands still running and mark their tickets failed."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        # Tasks cancelled before their first step never reached _run
        for ticket in self._tickets.values():
            if ticket.state is CommandState.PENDING:
                self._fail(ticket, "Command cancelled before completion")

    def _remember(self, ticket: CommandTicket) -> None:
        self._tickets[ticket.id] = ticket
        while len(self._tickets) > self._history:
            self._tickets.popitem(last=False)

    async def _run(self, ticket: CommandTicket, exec_id: str) -> None:
        try:
            raw = await self._containers.exec_start(exec_id, timeout=self._timeout)
            info = await self._containers.exec_inspect(exec_id)
        except httpx.HTTPError as e:
            self._fail(ticket, docker_error_message(e))
            return
        except asyncio.CancelledError:
            self._fail(ticket, "Command cancelled before completion")
            raise
        except Exception as e:
            logger.exception(
                "Command execution crashed",
                extra={"container_id": ticket.instance_id, "command_id": ticket.id},
            )
            self._fail(ticket, str(e) or e.__class__.__name__)
            return

        ticket.output = decode_log_stream(raw)
        ticket.exit_code = info.get("ExitCode")
        ticket.state = CommandState.COMPLETED if ticket.exit_code == 0 else CommandState.FAILED
        ticket.finished_at = datetime.now(timezone.utc)
        MINERR_COMMANDS_TOTAL.labels(state=ticket.state.value).inc()
        logger.info(
            "Command finished",
            extra={
                "event": LogEvent.COMMAND_COMPLETED,
                "container_id": ticket.instance_id,
                "command_id": ticket.id,
                "exit_code": ticket.exit_code,
            },
        )

    def _fail(self, ticket: CommandTicket, error: str) -> None:
        """Finalize a ticket whose execution did not run to completion."""
        ticket.state = CommandState.FAILED
        ticket.error = error
        ticket.finished_at = datetime.now(timezone.utc)
        MINERR_COMMANDS_TOTAL.labels(state="failed").inc()
        logger.warning(
            "Command execution failed",
            extra={
                "event": LogEvent.COMMAND_FAILED,
                "container_id": ticket.instance_id,
                "command_id": ticket.id,
                "error": error,
            },
        )
