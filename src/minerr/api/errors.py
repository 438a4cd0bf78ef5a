"""Error handling module for Minerr.

This module defines error codes, exception classes, and response models.

Error Response Format:
{
    "error": {
        "code": "PORT_CONFLICT",
        "message": "Port 25565 is already in use"
    }
}
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes for the Minerr API."""

    UNAUTHORIZED = "UNAUTHORIZED"
    IMAGE_UNAVAILABLE = "IMAGE_UNAVAILABLE"
    PORT_CONFLICT = "PORT_CONFLICT"
    PROVISION_FAILED = "PROVISION_FAILED"
    COMMAND_REJECTED = "COMMAND_REJECTED"
    COMMAND_NOT_FOUND = "COMMAND_NOT_FOUND"
    LOG_FETCH_FAILED = "LOG_FETCH_FAILED"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Error response format."""

    error: ErrorDetail


class MinerrError(Exception):
    """Base exception for Minerr.

    All Minerr-specific exceptions should inherit from this class.
    This enables centralized exception handling in FastAPI.

    Attributes:
        code: The error code from ErrorCode enum.
        message: Human-readable error message.
        status_code: HTTP status code to return.
    """

    def __init__(self, code: ErrorCode, message: str, status_code: int) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=ErrorDetail(code=self.code.value, message=self.message)
        )


class UnauthorizedError(MinerrError):
    """401 Unauthorized - Missing or invalid bearer token."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(ErrorCode.UNAUTHORIZED, message, 401)


class ImageUnavailableError(MinerrError):
    """502 Bad Gateway - Server image could not be pulled."""

    def __init__(self, message: str = "Server image unavailable") -> None:
        super().__init__(ErrorCode.IMAGE_UNAVAILABLE, message, 502)


class PortConflictError(MinerrError):
    """409 Conflict - Requested host port is already bound."""

    def __init__(self, port: int, message: str | None = None) -> None:
        self.port = port
        super().__init__(
            ErrorCode.PORT_CONFLICT,
            message or f"Port {port} is already in use",
            409,
        )


class ProvisionFailedError(MinerrError):
    """500 Internal Server Error - Container creation or start failed."""

    def __init__(self, message: str = "Failed to create server") -> None:
        super().__init__(ErrorCode.PROVISION_FAILED, message, 500)


class CommandRejectedError(MinerrError):
    """400 Bad Request - Console command rejected before dispatch."""

    def __init__(self, message: str = "Command text is required") -> None:
        super().__init__(ErrorCode.COMMAND_REJECTED, message, 400)


class CommandNotFoundError(MinerrError):
    """404 Not Found - Unknown or expired command id."""

    def __init__(self, message: str = "Command not found") -> None:
        super().__init__(ErrorCode.COMMAND_NOT_FOUND, message, 404)


class LogFetchFailedError(MinerrError):
    """404 Not Found - No output retrievable for the instance."""

    def __init__(self, message: str = "No logs available for this server") -> None:
        super().__init__(ErrorCode.LOG_FETCH_FAILED, message, 404)
