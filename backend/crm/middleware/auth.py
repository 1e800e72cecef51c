"""Authentication - resolve the acting tenant from a session cookie or bearer token.

Sessions are issued by the external auth service; this module only reads
them. Service clients may instead present an HS256 bearer token whose
``sub`` is the user id.
"""

from datetime import datetime, timedelta

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.config import settings
from crm.database import get_db
from crm.errors import AuthenticationRequired
from crm.models.user import Session, User

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def create_access_token(user_id: str, expires_hours: int | None = None) -> str:
    """Create a bearer token for a user."""
    hours = expires_hours if expires_hours is not None else settings.access_token_expire_hours
    expire = datetime.utcnow() + timedelta(hours=hours)
    payload = {"sub": user_id, "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the user id carried by a bearer token."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise AuthenticationRequired("Invalid or expired token")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationRequired("Invalid token")
    return user_id


async def _user_from_session_token(db: AsyncSession, token: str) -> User | None:
    # Signed cookies look like "<token>.<signature>"; the lookup key is the token part
    token = token.split(".", 1)[0]
    result = await db.execute(
        select(User)
        .join(Session, Session.user_id == User.id)
        .where(Session.token == token, Session.expires_at > datetime.utcnow())
    )
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user. Raises 401 when there is none."""
    user = None
    cookie = request.cookies.get(settings.session_cookie_name)
    if cookie:
        user = await _user_from_session_token(db, cookie)
    if not user and credentials:
        user_id = decode_access_token(credentials.credentials)
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationRequired()
    return user
