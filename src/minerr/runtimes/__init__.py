"""Container runtimes for Minerr."""

from minerr.runtimes.docker import DockerRuntime

__all__ = ["DockerRuntime"]
