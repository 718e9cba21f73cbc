"""
Domain errors for the form engine.

Core operations raise these; main.py translates each one to a response code.
"""

from typing import List, Optional

from schemas import FieldError


class FormsError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(FormsError):
    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message)


class Unauthenticated(FormsError):
    status_code = 401
    message = "Not authenticated"


class Unauthorized(FormsError):
    status_code = 403
    message = "Unauthorized"


class NotFound(FormsError):
    status_code = 404
    message = "Not found"


class StoreFailure(FormsError):
    status_code = 500
    message = "Server error"
