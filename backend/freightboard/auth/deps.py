"""FastAPI dependencies for authentication.

Dependencies:
  get_current_user      → decode JWT, load the active user row
  get_current_identity  → the caller as a role-specific Identity value
  require_admin         → restrict to admins
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freightboard.auth.identity import AdminIdentity, Identity, identity_from_user
from freightboard.auth.jwt import decode_token
from freightboard.database import get_db
from freightboard.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT and load the user it names."""
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_identity(
    user: User = Depends(get_current_user),
) -> Identity:
    return identity_from_user(user)


async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> AdminIdentity:
    """Restrict endpoint to admins only."""
    if not isinstance(identity, AdminIdentity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity
