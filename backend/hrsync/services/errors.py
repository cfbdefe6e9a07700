"""
Service-layer exceptions.

Services raise these instead of HTTPException so they stay usable from
scripts and tests; routers translate them with `to_http`.
"""

from fastapi import HTTPException


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Bad input: oversized upload, missing anchor date, unknown enum value."""

    status_code = 400


class UploadTooLargeError(ValidationError):
    status_code = 413


class NotFoundError(ServiceError):
    status_code = 404


def to_http(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
