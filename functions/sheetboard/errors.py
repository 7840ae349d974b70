"""
Error taxonomy for board operations.

Services raise these; the FastAPI exception handler in ``sheetboard.app``
turns every one of them into a structured error result.
"""

from __future__ import annotations


class BoardError(Exception):
    status_code = 500
    default_message = "Board operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


class AuthError(BoardError):
    status_code = 401
    default_message = "Incorrect password"


class BusyError(BoardError):
    status_code = 409
    default_message = (
        "Another user is currently making changes. Please wait and try again."
    )


class NotFoundError(BoardError):
    status_code = 404
    default_message = "The specified post was not found"


class ValidationError(BoardError):
    status_code = 422
    default_message = "Invalid input"


class FormatError(ValidationError):
    default_message = "Invalid data URL format"


class UpstreamError(BoardError):
    status_code = 502
    default_message = "Text generation failed"


class StorageError(BoardError):
    status_code = 502
    default_message = "Storage operation failed"


class InitializationError(BoardError):
    status_code = 503
    default_message = "Initialization failed"
