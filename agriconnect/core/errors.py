from typing import Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = 'Internal server error'

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid request'


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'User already exists with this email'


class AuthError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid email or password'


class StoreError(AppError):
    default_message = 'Message store unavailable'


class UnexpectedError(AppError):
    pass


class RemoteServiceError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = 'Assistant service failed'

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        upstream_status: Optional[int] = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.timed_out = timed_out
