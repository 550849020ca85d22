"""
Domain exceptions raised by the workflow helpers.

Each one is an HTTPException carrying its own status code, so routes can keep
re-raising them with ``except HTTPException: raise`` and main.py renders them
in the standard response envelope.
"""
from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: dict = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)
        self.message = message

    def __str__(self):
        return self.message


class ValidationError(AppError):
    """Bad input or a broken business rule (stock, product cap, sensitive fields)"""
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    """Transition not allowed from the current status"""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
