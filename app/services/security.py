"""
Security services for the admin password check and JWT token management.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
import logging

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_ROLE = "admin"


class SecurityService:
    """Service for handling security operations."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return pwd_context.hash(password)

    def verify_admin_password(self, password: str) -> bool:
        """Check a plain password against ``ADMIN_PASSWORD_HASH``."""
        hashed = self.config.ADMIN_PASSWORD_HASH
        if not hashed:
            logger.warning("Admin login attempted but ADMIN_PASSWORD_HASH is not configured")
            return False
        try:
            return pwd_context.verify(password, hashed)
        except ValueError as e:
            logger.error(f"ADMIN_PASSWORD_HASH is not a valid bcrypt hash: {e}")
            return False

    def create_admin_token(self) -> str:
        """Create a signed admin JWT."""
        now = datetime.now(timezone.utc)
        to_encode: Dict[str, Any] = {
            "sub": ADMIN_ROLE,
            "role": ADMIN_ROLE,
            "iat": now,
            "exp": now + timedelta(hours=self.config.ADMIN_TOKEN_EXPIRE_HOURS),
        }
        return jwt.encode(to_encode, self.config.SECRET_KEY, algorithm=self.config.ALGORITHM)

    def verify_admin_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Decode a JWT; ``None`` unless it is a valid, unexpired admin token."""
        try:
            payload = jwt.decode(token, self.config.SECRET_KEY, algorithms=[self.config.ALGORITHM])
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            return None
        if payload.get("role") != ADMIN_ROLE:
            return None
        return payload

    def get_token_expiry_seconds(self) -> int:
        return self.config.ADMIN_TOKEN_EXPIRE_HOURS * 60 * 60


# Global security service instance
security_service = SecurityService()
