from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from jose import jwt, JWTError
from tortoise.exceptions import DoesNotExist
from loguru import logger

from agrohaat.core.config import settings
from agrohaat.models.profile import Profile


def create_access_token(user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """
    Mint a token in the identity provider's format.
    Used by tests and local tooling; production tokens come from the provider.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    payload = {
        "sub": str(user_id),
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


async def verify_token(token: str) -> Profile:
    """
    Verify the bearer token and load the matching profile
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        user_id = payload.get("sub") or payload.get("user_id")
        if not user_id:
            raise credentials_exception

        user = await Profile.get(id=user_id)
    except (JWTError, DoesNotExist, ValueError) as e:
        logger.warning(f"Authentication error: {str(e)}")
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user"
        )
    return user
