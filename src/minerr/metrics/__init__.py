"""Prometheus metrics for Minerr."""

from minerr.metrics.collector import (
    MINERR_ACTIONS_TOTAL,
    MINERR_COMMANDS_TOTAL,
    MINERR_CONTAINERS_TOTAL,
    MINERR_DOCKER_DURATION,
    MINERR_DOCKER_ERRORS,
    MINERR_LOG_STREAMS_ACTIVE,
    MINERR_PROVISION_TOTAL,
)

__all__ = [
    "MINERR_ACTIONS_TOTAL",
    "MINERR_COMMANDS_TOTAL",
    "MINERR_CONTAINERS_TOTAL",
    "MINERR_DOCKER_DURATION",
    "MINERR_DOCKER_ERRORS",
    "MINERR_LOG_STREAMS_ACTIVE",
    "MINERR_PROVISION_TOTAL",
]
