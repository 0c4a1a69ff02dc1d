"""
Domain errors and their HTTP rendering.

The booking core raises these exceptions; every service installs
the handlers from setup_error_handlers so that they reach the
client as JSON with the matching status code.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class UniRaumError(Exception):
    """Base class for errors surfaced to the caller of a core operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(UniRaumError):
    """Missing or malformed required fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"


class InvalidInterval(ValidationError):
    """An interval whose start is not strictly before its end."""

    kind = "invalid_interval"


class InvalidTimeRange(ValidationError):
    """Time input that cannot be parsed as ISO-8601."""

    kind = "invalid_time_range"


class ConflictError(UniRaumError):
    """The user already holds a confirmed booking in the requested period."""

    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"


class NotFoundError(UniRaumError):
    """A referenced room, booking, report or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


class ForbiddenError(UniRaumError):
    """Role or ownership check failed."""

    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"


def setup_error_handlers(app: FastAPI):
    """
    Register the domain error handler on a FastAPI application.

    Args:
        app: FastAPI application instance

    Example:
        app = FastAPI()
        setup_error_handlers(app)
    """

    @app.exception_handler(UniRaumError)
    async def uniraum_error_handler(request: Request, exc: UniRaumError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": exc.kind},
        )
