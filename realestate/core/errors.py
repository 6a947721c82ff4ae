# realestate/core/errors.py
"""Domain error kinds raised by the guard and the services.

Every kind carries the HTTP status it is rendered with; the handlers in
``realestate.main`` turn them into the failure envelope.
"""
from typing import Dict, Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message, errors)


class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class SessionExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Session expired"


class NotApproved(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Account not approved"


class AccountBanned(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Account has been banned"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"
