# app/services/auth/__init__.py
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt

from app.core.config import settings
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def create_jwt_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token carrying the given claims"""
    payload = dict(data)
    payload["exp"] = utcnow() + (expires_delta or timedelta(hours=settings.JWT_EXPIRE_HOURS))
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None if the token is invalid or expired"""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid access token: {e}")
        return None


__all__ = ["create_jwt_token", "decode_jwt_token"]
