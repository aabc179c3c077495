"""
Lucia toolkit: a structured error taxonomy and OAuth2 login sessions for FastAPI services.
"""

from .errors import ApiError, ApiErrorKind, AuthError, AuthErrorKind, ToolkitError

__all__ = [
    "ApiError",
    "ApiErrorKind",
    "AuthError",
    "AuthErrorKind",
    "ToolkitError",
]
