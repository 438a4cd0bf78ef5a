"""Result types for Docker runtime operations."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ActionResult(BaseModel):
    """Outcome of a lifecycle action.

    For ``command`` a successful result only means the command was
    accepted for execution; ``command_id`` identifies the ticket that
    reports completion.
    """

    success: bool
    message: str
    command_id: str | None = None


class CommandState(str, Enum):
    """Console command execution states."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CommandTicket(BaseModel):
    """Dispatched console command and, once finished, its output."""

    id: str
    instance_id: str
    command: list[str]
    state: CommandState = CommandState.PENDING
    exit_code: int | None = None
    output: str = ""
    error: str | None = None
    created_at: datetime
    finished_at: datetime | None = None
