"""
API package for the TubeDigest summary service.

This package contains FastAPI routers and endpoints for the application.
"""

from .summaries import router as summaries_router
from .users import router as users_router
from .webhooks import router as webhooks_router

__all__ = [
    'summaries_router',
    'users_router',
    'webhooks_router',
]
