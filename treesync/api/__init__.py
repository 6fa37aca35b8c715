"""
Content API Layer.

This package handles all communication with the remote content service.
"""

from .auth import UserSession
from .client import ContentAPIClient

__all__ = ["ContentAPIClient", "UserSession"]
