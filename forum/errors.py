"""
Error kinds raised by the service layer.

Each kind carries the HTTP status it maps to; the application-level
exception handlers in ``forum.main`` turn them into the failure envelope.
"""

from typing import Iterable, List, Optional


class ForumError(Exception):
    status_code = 500
    message = "An unexpected error occurred."

    def __init__(self, detail: Optional[str] = None, errors: Optional[Iterable[str]] = None):
        self.detail = detail or self.message
        self.errors: List[str] = list(errors) if errors is not None else [self.detail]
        super().__init__(self.detail)


class BadRequestError(ForumError):
    status_code = 400
    message = "Request parameters are invalid."


class UnauthorizedError(ForumError):
    status_code = 401
    message = "Authentication is required."


class NotFoundError(ForumError):
    status_code = 404
    message = "Resource not found."


class ValidationError(ForumError):
    """A write was rejected; ``errors`` holds one message per offending field."""

    status_code = 400
    message = "Request parameters are invalid."

    def __init__(self, errors: Iterable[str], detail: Optional[str] = None):
        super().__init__(detail, errors)
