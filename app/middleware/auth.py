"""
Admin authentication dependency for FastAPI.
"""

import logging
from typing import Any, Dict, Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.exceptions import AuthenticationError
from app.services.security import security_service

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme; a missing header is reported as our own 401
security = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """
    Dependency to require a valid admin JWT.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    payload = security_service.verify_admin_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    return payload
