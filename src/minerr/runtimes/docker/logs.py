"""Log tail polling for Docker runtime.

Each subscriber polls the runtime on a fixed interval instead of holding
a follow stream open. At most one fetch per subscriber is in flight, and
a frame is only emitted when the tail window changed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable

import httpx

from minerr.api.errors import LogFetchFailedError
from minerr.infra import ContainerAPI, decode_log_stream, docker_error_message
from minerr.logging_schema import LogEvent
from minerr.metrics import MINERR_LOG_STREAMS_ACTIVE
from minerr.runtimes.docker.models import LogFrame

if TYPE_CHECKING:
    from minerr.config import LogStreamConfig

logger = logging.getLogger(__name__)


@dataclass
class LogCursor:
    """Position of one subscriber in an instance's log stream."""

    instance_id: str
    index: int = 0
    baseline: list[str] = field(default_factory=list)

    @property
    def has_output(self) -> bool:
        """Whether at least one frame was emitted."""
        return self.index > 0


class LogTailPoller:
    """Serves incrementally updated log windows to subscribers."""

    def __init__(
        self,
        config: LogStreamConfig,
        containers: ContainerAPI | None = None,
    ) -> None:
        self._interval = config.poll_interval
        self._tail_lines = config.tail_lines
        self._containers = containers or ContainerAPI()

    async def open(self, instance_id: str) -> LogCursor:
        """Open a subscription for an existing instance.

        Raises:
            LogFetchFailedError: The instance does not exist or cannot be queried.
        """
        try:
            data = await self._containers.inspect(instance_id)
        except httpx.HTTPError as e:
            raise LogFetchFailedError(
                f"Cannot read logs of server {instance_id}: {docker_error_message(e)}"
            ) from e
        if data is None:
            raise LogFetchFailedError(f"No logs available for server {instance_id}")
        return LogCursor(instance_id=instance_id)

    async def poll_once(self, cursor: LogCursor) -> LogFrame | None:
        """Fetch the current window and return a frame if it changed.

        The first fetches return the full backlog; once the subscriber has
        seen output only the last ``tail_lines`` are requested. A failed
        fetch yields no frame.
        """
        tail = self._tail_lines if cursor.has_output else None
        try:
            raw = await self._containers.logs(cursor.instance_id, tail=tail)
        except httpx.HTTPError as e:
            logger.warning(
                "Log fetch failed",
                extra={
                    "event": LogEvent.LOG_FETCH_FAILED,
                    "container_id": cursor.instance_id,
                    "error": docker_error_message(e),
                },
            )
            return None

        lines = decode_log_stream(raw).splitlines()
        if lines == cursor.baseline:
            return None

        frame = LogFrame(data=lines, index=cursor.index)
        cursor.index += 1
        cursor.baseline = lines
        return frame

    async def stream(
        self,
        cursor: LogCursor,
        disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[LogFrame]:
        """Yield frames until the consumer closes the generator.

        ``disconnected`` is checked before every poll, so an idle stream
        ends as soon as its subscriber is gone.
        """
        MINERR_LOG_STREAMS_ACTIVE.inc()
        logger.info(
            "Log stream opened",
            extra={"event": LogEvent.LOG_STREAM_OPENED, "container_id": cursor.instance_id},
        )
        try:
            while True:
                if disconnected is not None and await disconnected():
                    break
                frame = await self.poll_once(cursor)
                if frame is not None:
                    yield frame
                await asyncio.sleep(self._interval)
        finally:
            MINERR_LOG_STREAMS_ACTIVE.dec()
            logger.info(
                "Log stream closed",
                extra={
                    "event": LogEvent.LOG_STREAM_CLOSED,
                    "container_id": cursor.instance_id,
                    "frames": cursor.index,
                },
            )
