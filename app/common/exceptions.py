"""
Domain errors shared by the ledger and cash register services.

Services raise these instead of HTTPException; app.main turns them into
JSON responses with the status code carried by each class.
"""
from fastapi import status


class AppError(Exception):
    """Base class for every recoverable domain failure."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"detail": self.message, "error": type(self).__name__}


class ValidationError(AppError):
    """Bad input shape or range. No state was changed."""

    status_code = 422


class NotFoundError(AppError):
    """A referenced account, register or entry does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Uniqueness violation, e.g. duplicate account code."""

    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(AppError):
    """Illegal state transition: closed register, insufficient cash, account in use."""

    status_code = status.HTTP_409_CONFLICT


class ConfigurationError(AppError):
    """A well-known account code required by a posting rule is missing."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
