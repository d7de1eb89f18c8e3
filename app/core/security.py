"""
Admin Authentication

The scheduler and automation endpoints are operator-only and are
protected by a shared API key sent in the X-API-Key header.
"""

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from ..config import get_settings
from .logging import get_logger

logger = get_logger(__name__)


async def verify_admin_access(
    x_api_key: Optional[str] = Header(None),
) -> dict:
    """
    Verify admin access via API key.

    Raises:
        HTTPException 401 if the key is missing or wrong
    """
    settings = get_settings()

    if x_api_key and secrets.compare_digest(x_api_key, settings.admin_api_key):
        logger.debug("admin_access_api_key")
        return {"method": "api_key", "uid": "admin"}

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing or invalid authentication. Use the X-API-Key header.",
    )
