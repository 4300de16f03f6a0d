"""
Identity handling: JWT bearer tokens -> Actor.

Accounts and sign-in live in a separate identity service. This API only
verifies the token signature and trusts the `sub` and `role` claims it
carries.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from venuebook.core.config import get_settings

settings = get_settings()
bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_actor(token: str) -> Actor:
    """Decode a bearer token. Raises JWTError or ValueError when unusable."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    return Actor(id=str(subject), role=Role(payload.get("role", Role.USER.value)))


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Actor]:
    """Actor for endpoints that also serve guests. A bad token is still a 401."""
    if credentials is None:
        return None
    try:
        return decode_actor(credentials.credentials)
    except (JWTError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_actor(
    actor: Optional[Actor] = Depends(get_optional_actor),
) -> Actor:
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor
