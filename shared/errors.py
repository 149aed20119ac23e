"""
Shared error handling for the Feature Flags service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class FlagsException(Exception):
    """Base exception for the Feature Flags service."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        from shared.logging import request_id_var

        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(FlagsException):
    """Malformed input rejected before it reaches a backend."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class BackendError(FlagsException):
    """Storage backend failure (connection, transaction, driver)."""

    def __init__(self, backend: str, message: str = "Backend error", details: Optional[Dict[str, Any]] = None):
        self.backend = backend
        super().__init__("BACKEND_ERROR", f"{backend}: {message}", details)


class SerializationError(BackendError):
    """Rule values could not be encoded or decoded."""

    def __init__(self, message: str = "Serialization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("serializer", message, details)
        self.code = "SERIALIZATION_ERROR"


class BackupError(FlagsException):
    """Backup file errors."""


class BackupNotFoundError(BackupError):
    """The backup file does not exist."""

    def __init__(self, path: str):
        super().__init__("BACKUP_NOT_FOUND", f"Backup file not found: {path}", {"path": path})


class MalformedBackupError(BackupError):
    """The backup file exists but its content is not a valid rule dump."""

    def __init__(self, path: str, reason: str):
        super().__init__("BACKUP_MALFORMED", f"Malformed backup file {path}: {reason}", {"path": path})
