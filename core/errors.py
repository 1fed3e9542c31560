"""
Error taxonomy shared by services and the HTTP layer.

Missing records on read paths are returned as empty/default values, so
NotFoundError is reserved for explicit admin update/delete targets.
"""
from __future__ import annotations


class CourseAccessError(Exception):
    """Base class for errors surfaced by the course access core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CourseAccessError):
    """Raised when an admin update or delete targets a record that does not exist."""

    status_code = 404


class ValidationFailure(CourseAccessError):
    """Raised before any write when input is rejected (size, media type, missing field)."""

    status_code = 400


class ExternalServiceFailure(CourseAccessError):
    """Raised when the document store, blob store or payment service is unreachable or errors."""

    status_code = 502


class AccessDeniedError(CourseAccessError):
    """Raised when the viewer has not unlocked the content they asked for."""

    status_code = 403
