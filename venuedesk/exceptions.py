"""
Error taxonomy for status updates and cache revalidation.

Routes catch these at their boundary and turn them into JSON bodies; the
application also registers a handler so nothing escapes as a bare 500.
"""

from typing import Optional


class VenueDeskError(Exception):
    """Base class carrying the HTTP status the error maps to"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class StatusValidationError(VenueDeskError):
    """Required field missing or request body unusable"""

    status_code = 400
    default_message = "Missing required fields"


class UnauthorizedError(VenueDeskError):
    status_code = 401
    default_message = "Invalid secret token"


class EntityNotFoundError(VenueDeskError):
    """Entity absent, or the update was rejected by a domain rule"""

    status_code = 404
    default_message = "Not found"


class AmbiguousTimeoutError(VenueDeskError):
    """A deadline elapsed before the outcome was known"""

    status_code = 504
    default_message = "Operation timed out; outcome unknown"


class InternalServiceError(VenueDeskError):
    status_code = 500
