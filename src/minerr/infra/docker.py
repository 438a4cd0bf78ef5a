"""Docker Engine API client for Minerr.

Provides async Docker API access for containers, exec sessions and images.
Supports both Unix socket and TCP connections.
"""

from __future__ import annotations

import json
import logging
import struct
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from pydantic import BaseModel

from minerr.config import DockerConfig, get_config
from minerr.metrics import MINERR_DOCKER_DURATION, MINERR_DOCKER_ERRORS

logger = logging.getLogger(__name__)


class ImagePullError(Exception):
    """Raised when an image could not be pulled from the registry."""

    pass


def docker_error_message(exc: Exception) -> str:
    """Extract the human-readable cause from a Docker API failure.

    The Engine API reports errors as ``{"message": "..."}``; transport
    failures fall back to the exception text.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        text = exc.response.text.strip()
        return text or str(exc)
    return str(exc) or exc.__class__.__name__


def decode_log_stream(data: bytes) -> str:
    """Decode container output into text.

    Containers without a TTY return a multiplexed stream where every frame
    starts with an 8-byte header (stream type, 3 zero bytes, big-endian size).
    TTY containers return raw bytes.
    """
    if len(data) < 8 or data[0] not in (0, 1, 2) or data[1:4] != b"\x00\x00\x00":
        return data.decode("utf-8", errors="replace")

    chunks: list[bytes] = []
    offset = 0
    while offset + 8 <= len(data):
        (size,) = struct.unpack(">I", data[offset + 4 : offset + 8])
        chunks.append(data[offset + 8 : offset + 8 + size])
        offset += 8 + size
    return b"".join(chunks).decode("utf-8", errors="replace")


@asynccontextmanager
async def _observe(operation: str) -> AsyncIterator[None]:
    """Record duration and failures of a Docker operation."""
    start = time.monotonic()
    try:
        yield
    except httpx.HTTPStatusError:
        MINERR_DOCKER_ERRORS.labels(operation=operation, error_type="api_error").inc()
        raise
    except httpx.HTTPError:
        MINERR_DOCKER_ERRORS.labels(operation=operation, error_type="transport").inc()
        raise
    finally:
        MINERR_DOCKER_DURATION.labels(operation=operation).observe(time.monotonic() - start)


# =============================================================================
# Pydantic Models
# =============================================================================


class HostConfig(BaseModel):
    """Docker HostConfig for container creation."""

    port_bindings: dict[str, list[dict[str, str]]] = {}

    model_config = {"frozen": True}

    def to_api(self) -> dict:
        """Convert to Docker API format."""
        return {"PortBindings": self.port_bindings}


class ContainerConfig(BaseModel):
    """Docker container configuration for creation."""

    image: str
    name: str
    env: list[str] = []
    tty: bool = False
    open_stdin: bool = False
    exposed_ports: dict[str, dict] = {}
    labels: dict[str, str] = {}
    host_config: HostConfig = HostConfig()

    model_config = {"frozen": True}

    def to_api(self) -> dict:
        """Convert to Docker API JSON format."""
        result: dict = {
            "Image": self.image,
            "Tty": self.tty,
            "OpenStdin": self.open_stdin,
            "ExposedPorts": self.exposed_ports,
            "HostConfig": self.host_config.to_api(),
        }
        if self.env:
            result["Env"] = self.env
        if self.labels:
            result["Labels"] = self.labels
        return result


# =============================================================================
# Docker Client (Singleton)
# =============================================================================


class DockerClient:
    """Async Docker API client."""

    def __init__(self, config: DockerConfig | None = None) -> None:
        self._config = config or get_config().docker
        self._host = self._config.host
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> DockerConfig:
        return self._config

    def _create_client(self) -> httpx.AsyncClient:
        """Create a new HTTP client."""
        timeout = self._config.api_timeout
        if self._host.startswith("unix://"):
            socket_path = self._host.replace("unix://", "")
            transport = httpx.AsyncHTTPTransport(uds=socket_path)
            return httpx.AsyncClient(
                transport=transport,
                base_url="http://localhost",
                timeout=timeout,
            )
        else:
            base_url = self._host
            if base_url.startswith("tcp://"):
                base_url = base_url.replace("tcp://", "http://")
            return httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def get(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = self._create_client()
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


# Global singleton
_docker_client: DockerClient | None = None


def get_docker_client() -> DockerClient:
    """Get the global Docker client singleton."""
    global _docker_client
    if _docker_client is None:
        _docker_client = DockerClient()
    return _docker_client


async def close_docker() -> None:
    """Close the global Docker client."""
    global _docker_client
    if _docker_client:
        await _docker_client.close()
        _docker_client = None


# =============================================================================
# Container API
# =============================================================================


class ContainerAPI:
    """Docker Container API operations."""

    def __init__(self, client: DockerClient | None = None) -> None:
        self._docker = client or get_docker_client()

    async def list(self, filters: dict | None = None) -> list[dict]:
        """List containers, including stopped ones."""
        client = await self._docker.get()
        params: dict = {"all": "true"}
        if filters:
            params["filters"] = json.dumps(filters)
        resp = await client.get("/containers/json", params=params)
        resp.raise_for_status()
        return resp.json()

    async def inspect(self, container_id: str) -> dict | None:
        """Inspect a container. Returns None if it does not exist."""
        client = await self._docker.get()
        resp = await client.get(f"/containers/{container_id}/json")
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    async def create(self, config: ContainerConfig) -> str:
        """Create a container and return its id."""
        async with _observe("create"):
            client = await self._docker.get()
            resp = await client.post(
                "/containers/create",
                params={"name": config.name},
                json=config.to_api(),
            )
            resp.raise_for_status()
        container_id = resp.json()["Id"]
        logger.info("Created container: %s (%s)", config.name, container_id[:12])
        return container_id

    async def start(self, container_id: str) -> None:
        """Start a container."""
        async with _observe("start"):
            client = await self._docker.get()
            resp = await client.post(f"/containers/{container_id}/start")
            if resp.status_code not in (204, 304):
                resp.raise_for_status()
        logger.info("Started container: %s", container_id)

    async def unpause(self, container_id: str) -> None:
        """Resume a paused container."""
        async with _observe("unpause"):
            client = await self._docker.get()
            resp = await client.post(f"/containers/{container_id}/unpause")
            resp.raise_for_status()
        logger.info("Unpaused container: %s", container_id)

    async def pause(self, container_id: str) -> None:
        """Pause a running container."""
        async with _observe("pause"):
            client = await self._docker.get()
            resp = await client.post(f"/containers/{container_id}/pause")
            resp.raise_for_status()
        logger.info("Paused container: %s", container_id)

    async def restart(self, container_id: str, timeout: int = 10) -> None:
        """Restart a container."""
        async with _observe("restart"):
            client = await self._docker.get()
            resp = await client.post(
                f"/containers/{container_id}/restart",
                params={"t": str(timeout)},
                # Docker waits up to `timeout` seconds for a graceful stop
                timeout=self._docker.config.api_timeout + timeout,
            )
            resp.raise_for_status()
        logger.info("Restarted container: %s", container_id)

    async def remove(self, container_id: str, force: bool = True) -> None:
        """Remove a container."""
        async with _observe("remove"):
            client = await self._docker.get()
            resp = await client.delete(
                f"/containers/{container_id}",
                params={"force": "true" if force else "false"},
            )
            resp.raise_for_status()
        logger.info("Removed container: %s", container_id)

    async def logs(self, container_id: str, tail: int | None = None) -> bytes:
        """Get combined stdout/stderr. ``tail=None`` returns the full backlog."""
        client = await self._docker.get()
        params = {
            "stdout": "true",
            "stderr": "true",
            "tail": "all" if tail is None else str(tail),
        }
        resp = await client.get(f"/containers/{container_id}/logs", params=params)
        resp.raise_for_status()
        return resp.content

    async def stats(self, container_id: str) -> dict:
        """Get a single resource usage snapshot."""
        client = await self._docker.get()
        resp = await client.get(
            f"/containers/{container_id}/stats",
            params={"stream": "false", "one-shot": "true"},
        )
        resp.raise_for_status()
        return resp.json()

    async def exec_create(self, container_id: str, cmd: list[str]) -> str:
        """Create an exec session capturing combined output. Returns exec id."""
        client = await self._docker.get()
        resp = await client.post(
            f"/containers/{container_id}/exec",
            json={
                "AttachStdout": True,
                "AttachStderr": True,
                "Tty": False,
                "Cmd": cmd,
            },
        )
        resp.raise_for_status()
        return resp.json()["Id"]

    async def exec_start(self, exec_id: str, timeout: float | None = None) -> bytes:
        """Run an exec session to completion and return its raw output."""
        async with _observe("exec"):
            client = await self._docker.get()
            resp = await client.post(
                f"/exec/{exec_id}/start",
                json={"Detach": False, "Tty": False},
                timeout=timeout or self._docker.config.exec_timeout,
            )
            resp.raise_for_status()
        return resp.content

    async def exec_inspect(self, exec_id: str) -> dict:
        """Inspect an exec session (exit code, running state)."""
        client = await self._docker.get()
        resp = await client.get(f"/exec/{exec_id}/json")
        resp.raise_for_status()
        return resp.json()


# =============================================================================
# Image API
# =============================================================================


class ImageAPI:
    """Docker Image API operations."""

    def __init__(self, client: DockerClient | None = None) -> None:
        self._docker = client or get_docker_client()

    async def list(self, reference: str | None = None) -> list[dict]:
        """List local images, optionally filtered by repository reference."""
        client = await self._docker.get()
        params: dict = {}
        if reference:
            params["filters"] = json.dumps({"reference": [reference]})
        resp = await client.get("/images/json", params=params)
        resp.raise_for_status()
        return resp.json()

    async def pull(self, image_ref: str) -> None:
        """Pull image from registry, blocking until the pull finishes.

        Raises:
            ImagePullError: Registry or daemon reported a failure.
        """
        if ":" in image_ref:
            image, tag = image_ref.rsplit(":", 1)
        else:
            image, tag = image_ref, "latest"

        logger.info("Pulling image: %s:%s", image, tag)

        try:
            async with _observe("pull"):
                client = await self._docker.get()
                resp = await client.post(
                    "/images/create",
                    params={"fromImage": image, "tag": tag},
                    timeout=self._docker.config.image_pull_timeout,
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ImagePullError(docker_error_message(e)) from e

        # The daemon answers 200 and reports failures inside the progress stream
        for line in resp.text.splitlines():
            if not line.strip():
                continue
            try:
                progress = json.loads(line)
            except ValueError:
                continue
            if isinstance(progress, dict) and progress.get("error"):
                raise ImagePullError(str(progress["error"]))

        logger.info("Pulled image: %s:%s", image, tag)
