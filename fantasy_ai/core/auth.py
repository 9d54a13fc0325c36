"""
Auth module with JWT token validation
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fantasy_ai.core.config import settings
from fantasy_ai.core.database import get_db
from fantasy_ai.core.errors import AuthenticationError, AuthorizationError
from fantasy_ai.models.database_models import LeagueRole, User, UserLeague

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _secret() -> str:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET environment variable is not set")
    return settings.JWT_SECRET


def create_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))
    payload = {
        "userId": user_id,
        "email": email,
        "sub": user_id,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """Decode a token, raising AuthenticationError when it is expired or invalid"""
    secret = _secret()
    try:
        return jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.PyJWTError as e:
        logger.info(f"Rejected token: {e}")
        raise AuthenticationError("Invalid token")


def _load_user(db: Session, token: str) -> User:
    payload = verify_token(token)
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate current user from the bearer token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")

    user = _load_user(db, credentials.credentials)
    request.state.user = user
    return user


def require_league_role(*roles: LeagueRole):
    """Dependency factory: the current user must hold one of `roles` in the league_id path param"""
    allowed = {LeagueRole(role) for role in roles}

    async def checker(
        league_id: str,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> UserLeague:
        membership = (
            db.query(UserLeague)
            .filter(UserLeague.user_id == user.id, UserLeague.league_id == league_id)
            .first()
        )
        if not membership:
            raise AuthorizationError("Not a member of this league")

        if allowed and membership.role not in allowed:
            raise AuthorizationError(f"Role '{membership.role.value}' not authorized for this action")

        return membership

    return checker
