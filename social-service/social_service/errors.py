"""
Domain error taxonomy shared by every component.

All four kinds are synchronous, caller-visible failures of the command that
raised them. The API layer maps them onto HTTP status codes.
"""
from typing import Optional


class SocialServiceError(Exception):
    """Base class for domain failures"""

    status_code: int = 400
    code: str = "social_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(SocialServiceError):
    """Malformed or semantically disallowed input (self-follow, self-tag...)"""

    status_code = 400
    code = "validation_error"


class ConflictError(SocialServiceError):
    """Duplicate follow edge, fact row or active tag"""

    status_code = 409
    code = "conflict"


class NotFoundError(SocialServiceError):
    """Referenced edge, content, tag, profile or notification does not exist"""

    status_code = 404
    code = "not_found"


class PermissionDeniedError(SocialServiceError):
    """Actor lacks authority for the requested transition"""

    status_code = 403
    code = "permission_denied"
