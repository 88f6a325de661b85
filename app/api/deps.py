from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError

from app.core.database import get_db
from app.core.security import decode_access_token
from app.models.models import Team, User
from app.services.errors import NotFoundError
from app.services.standings import get_team_for_owner

# Tokens are issued elsewhere; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

_unauthorized = dict(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    try:
        user_id = int(decode_access_token(token).get("sub"))
    except (JWTError, ValueError, TypeError):
        raise HTTPException(**_unauthorized)

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(**_unauthorized)
    return user


async def require_commissioner(
    current_user: User = Depends(get_current_user),
) -> User:
    """Retention changes, scoring and forced recalculation are commissioner-only."""
    if not current_user.is_commissioner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Commissioner access required",
        )
    return current_user


async def get_current_team(
    league_season_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Team:
    """The caller's own team in the league season in the path."""
    try:
        return await get_team_for_owner(db, league_season_id, current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
