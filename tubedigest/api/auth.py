"""
Caller identity for API endpoints.

Authentication happens upstream; the identity proxy forwards the verified
user id in a trusted header.
"""

import logging

from fastapi import HTTPException, Request, status

from ..config import settings

logger = logging.getLogger(__name__)


def get_current_user_id(request: Request) -> str:
    """FastAPI dependency returning the authenticated user id, or 401."""
    user_id = request.headers.get(settings.user_id_header, '').strip()
    if not user_id:
        logger.info(f"Rejected unauthenticated request to {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return user_id
