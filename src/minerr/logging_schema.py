"""Log event types for structured logging."""

from enum import StrEnum


class LogEvent(StrEnum):
    """Log event types for Minerr.

    Used with logger.info/warning/error extra dict:
        logger.info("message", extra={"event": LogEvent.CONTAINER_STARTED, ...})
    """

    # Application lifecycle
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # Container events
    CONTAINER_STARTED = "container_started"

    # Image events
    IMAGE_RESOLVED = "image_resolved"
    IMAGE_PULLED = "image_pulled"
    IMAGE_PULL_FAILED = "image_pull_failed"

    # Provisioning
    PROVISION_FAILED = "provision_failed"
    PORT_CONFLICT = "port_conflict"

    # Actions
    ACTION_COMPLETED = "action_completed"
    ACTION_FAILED = "action_failed"

    # Console commands
    COMMAND_DISPATCHED = "command_dispatched"
    COMMAND_COMPLETED = "command_completed"
    COMMAND_FAILED = "command_failed"
    COMMAND_REJECTED = "command_rejected"

    # Log streams
    LOG_STREAM_OPENED = "log_stream_opened"
    LOG_STREAM_CLOSED = "log_stream_closed"
    LOG_FETCH_FAILED = "log_fetch_failed"

    # Auth
    AUTH_REJECTED = "auth_rejected"

    # Error events
    UNHANDLED_EXCEPTION = "unhandled_exception"
    API_ERROR = "api_error"
