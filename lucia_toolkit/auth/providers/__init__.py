"""
OAuth identity providers.
"""

from .base import AbstractOAuthProvider
from .google import GoogleProvider
from .github import GitHubProvider

__all__ = [
    "AbstractOAuthProvider",
    "GoogleProvider",
    "GitHubProvider",
]
