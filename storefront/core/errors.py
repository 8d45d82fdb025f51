"""
Domain exceptions and their HTTP mapping

Services and repositories raise these; the handlers registered by
register_exception_handlers() turn them into JSON responses.
"""
import logging
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for errors that map to an HTTP status"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": self.message}


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "The resource you were looking for could not be found."):
        super().__init__(message)


class AuthenticationError(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "You are not authorized to perform that action."):
        super().__init__(message)


class ValidationFailed(StorefrontError):
    """One or more field errors; rendered as {"errors": [...]}"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)

    def to_body(self) -> dict:
        return {"errors": self.errors}


class TransitionError(StorefrontError):
    """Checkout state machine refused a transition"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def to_body(self) -> dict:
        return {"errors": [self.message]}


class LockFailed(StorefrontError):
    """The order is being modified by another request"""

    status_code = status.HTTP_409_CONFLICT


class ThrottledError(StorefrontError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body


async def storefront_error_handler(request: Request, exc: StorefrontError):
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
