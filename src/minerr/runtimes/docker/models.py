"""Instance models for the Docker runtime.

Nothing here is persisted: descriptors are rebuilt from the container
runtime on every query.
"""

import re
from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


class InstanceState(StrEnum):
    """Lifecycle status as reported by the container runtime."""

    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    EXITED = "exited"
    DEAD = "dead"

    @classmethod
    def from_runtime(cls, status: str | None) -> "InstanceState":
        """Map a Docker ``State.Status`` value.

        ``removing`` and anything unknown are reported as dead.
        """
        try:
            return cls(status or "")
        except ValueError:
            return cls.DEAD


class ProvisioningMode(StrEnum):
    """Whether the server runs plain software or a managed modpack."""

    BASE = "BASE"
    MANAGED_MODPACK = "MANAGED_MODPACK"


class ResourceUsage(BaseModel):
    """Memory snapshot in bytes."""

    memory_used: int
    memory_limit: int


class InstanceDescriptor(BaseModel):
    """Fully materialized view of one game-server container."""

    id: str
    name: str
    image: str
    env: list[str]
    status: InstanceState
    port: int | None = None
    usage: ResourceUsage | None = None


class CreationRequest(BaseModel):
    """Server creation request."""

    name: str = Field(min_length=1, max_length=64)
    motd: str = Field(default="A Minecraft Server", max_length=256)
    max_players: int = Field(default=20, ge=1, le=1000)
    memory: int = Field(default=1024, ge=128, le=16384, description="Memory limit in MB")
    port: int = Field(default=25565, ge=1, le=65535, description="Host port")
    version: str = "1.20.1"
    mode: ProvisioningMode = ProvisioningMode.BASE
    cf_api_key: str | None = None
    cf_modpack_url: str | None = None

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not VERSION_PATTERN.match(value):
            raise ValueError("Version must be in the format X.Y.Z (e.g., 1.20.1)")
        return value

    @field_validator("cf_api_key", "cf_modpack_url")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @model_validator(mode="after")
    def _check_mode_fields(self) -> "CreationRequest":
        has_modpack = self.cf_api_key is not None or self.cf_modpack_url is not None
        if self.mode is ProvisioningMode.MANAGED_MODPACK:
            if self.cf_api_key is None or self.cf_modpack_url is None:
                raise ValueError(
                    "CurseForge API key and modpack URL are required for modpack servers"
                )
        elif has_modpack:
            raise ValueError(
                "CurseForge API key and modpack URL must not be set for base servers"
            )
        return self


# =============================================================================
# Actions
# =============================================================================


class StartAction(BaseModel):
    action: Literal["start"] = "start"


class PauseAction(BaseModel):
    action: Literal["pause"] = "pause"


class RestartAction(BaseModel):
    action: Literal["restart"] = "restart"


class DeleteAction(BaseModel):
    action: Literal["delete"] = "delete"


class CommandAction(BaseModel):
    """Console command. ``parameter`` is validated by the executor."""

    action: Literal["command"] = "command"
    parameter: str | None = None


Action = Annotated[
    Union[StartAction, PauseAction, RestartAction, DeleteAction, CommandAction],
    Field(discriminator="action"),
]


class ActionRequest(RootModel[Action]):
    """Lifecycle action request body, discriminated on ``action``."""


class LogFrame(BaseModel):
    """One log stream emission: the full current tail window."""

    data: list[str]
    index: int
