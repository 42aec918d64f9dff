"""API Routers package

This package contains all API route handlers.
Routers are organized by feature domain.
"""

from . import channels_router, commands_router, oauth_router

__all__ = [
    "channels_router",
    "commands_router",
    "oauth_router",
]
