"""Minerr infrastructure layer."""

from minerr.infra.docker import (
    ContainerAPI,
    ContainerConfig,
    DockerClient,
    HostConfig,
    ImageAPI,
    ImagePullError,
    close_docker,
    decode_log_stream,
    docker_error_message,
    get_docker_client,
)

__all__ = [
    "ContainerAPI",
    "ContainerConfig",
    "DockerClient",
    "HostConfig",
    "ImageAPI",
    "ImagePullError",
    "close_docker",
    "decode_log_stream",
    "docker_error_message",
    "get_docker_client",
]
