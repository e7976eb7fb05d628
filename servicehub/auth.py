"""
Bearer token actor resolution

Tokens are issued by the platform's auth service and signed with the shared
SECRET_KEY. This module only verifies them and maps the claims to an actor.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import JWT_ALGORITHM, SECRET_KEY
from .enums import ActorRole

logger = logging.getLogger(__name__)

security = HTTPBearer()


@dataclass(frozen=True)
class Actor:
    """Authenticated caller"""

    subject: str
    email: str
    role: ActorRole
    provider_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    def owns_provider(self, provider_id: int) -> bool:
        return self.role == ActorRole.PROVIDER and self.provider_id == provider_id


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token

    Args:
        data: Claims to encode (sub, email, role, provider_id)
        expires_delta: Token expiration time (default 60 minutes)
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=60))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


def actor_from_claims(claims: dict) -> Actor:
    try:
        role = ActorRole(str(claims.get("role", "")).upper())
    except ValueError as e:
        raise HTTPException(status_code=403, detail="Unknown role") from e

    email = claims.get("email")
    subject = claims.get("sub")
    if not email or not subject:
        raise HTTPException(status_code=401, detail="Token missing required claims")

    provider_id = claims.get("provider_id")
    return Actor(
        subject=str(subject),
        email=email.lower(),
        role=role,
        provider_id=int(provider_id) if provider_id is not None else None,
    )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """Resolve the caller from the bearer token"""
    claims = verify_jwt_token(credentials.credentials)
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return actor_from_claims(claims)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        logger.warning(f"⚠️ Admin access denied for {actor.email}")
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor


def ensure_provider_access(actor: Actor, provider_id: int) -> None:
    """Only the owning provider (or an admin) may act on provider resources"""
    if actor.is_admin or actor.owns_provider(provider_id):
        return
    logger.warning(f"⚠️ {actor.email} denied access to provider {provider_id}")
    raise HTTPException(status_code=403, detail="Not allowed to manage this provider")
