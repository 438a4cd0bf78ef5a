"""Prometheus metrics definitions for Minerr.

Tracks container runtime calls and the operator-facing lifecycle
operations built on top of them.
"""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Histogram Buckets
# =============================================================================
# Docker operations range from a few ms (inspect) to minutes (image pull)
_BUCKETS_SLOW = (
    0.01, 0.05, 0.1, 0.2, 0.4,
    0.8, 1.5, 3, 6, 12,
    24, 48, 96, 180, 600,
)

# =============================================================================
# Docker Operation Metrics
# =============================================================================

MINERR_DOCKER_DURATION = Histogram(
    "minerr_docker_duration_seconds",
    "Duration of Docker operations",
    ["operation"],  # create, start, pause, restart, remove, pull, exec
    buckets=_BUCKETS_SLOW,
)

MINERR_DOCKER_ERRORS = Counter(
    "minerr_docker_errors_total",
    "Total Docker operation errors",
    ["operation", "error_type"],  # error_type: api_error, transport
)

# =============================================================================
# Lifecycle Metrics
# =============================================================================

MINERR_PROVISION_TOTAL = Counter(
    "minerr_provision_total",
    "Server creation attempts by outcome",
    ["result"],  # success, image_unavailable, port_conflict, failed
)

MINERR_ACTIONS_TOTAL = Counter(
    "minerr_actions_total",
    "Lifecycle actions by outcome",
    ["action", "result"],  # result: success, failure
)

MINERR_COMMANDS_TOTAL = Counter(
    "minerr_commands_total",
    "Console commands by final state",
    ["state"],  # completed, failed, rejected
)

# =============================================================================
# Snapshot Metrics
# =============================================================================

MINERR_LOG_STREAMS_ACTIVE = Gauge(
    "minerr_log_streams_active",
    "Number of open log tail subscriptions",
)

MINERR_CONTAINERS_TOTAL = Gauge(
    "minerr_containers_total",
    "Number of managed containers seen on the last listing",
)


def _init_metrics() -> None:
    """Initialize labeled metrics with zero values."""
    for op in ["create", "start", "unpause", "pause", "restart", "remove", "pull", "exec"]:
        MINERR_DOCKER_DURATION.labels(operation=op)
        MINERR_DOCKER_ERRORS.labels(operation=op, error_type="api_error")
        MINERR_DOCKER_ERRORS.labels(operation=op, error_type="transport")

    for result in ["success", "image_unavailable", "port_conflict", "failed"]:
        MINERR_PROVISION_TOTAL.labels(result=result)

    for action in ["start", "pause", "restart", "delete", "command"]:
        MINERR_ACTIONS_TOTAL.labels(action=action, result="success")
        MINERR_ACTIONS_TOTAL.labels(action=action, result="failure")

    for state in ["completed", "failed", "rejected"]:
        MINERR_COMMANDS_TOTAL.labels(state=state)


_init_metrics()
