"""
Auth API package.

Contains the registration, verification, login and current-user routes.
"""

from agilehive.api.auth.routes import router

__all__ = ["router"]
