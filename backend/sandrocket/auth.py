"""
Session authentication for FastAPI.

Passwords are hashed with bcrypt. A signed JWT carrying the user id travels
in an HttpOnly session cookie; `get_current_user` verifies it on every
protected request.
"""

from datetime import timedelta

import bcrypt
from fastapi import Depends, Request, Response
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from sandrocket.config import get_settings
from sandrocket.database import get_session
from sandrocket.exceptions import AuthError
from sandrocket.logging_config import get_logger
from sandrocket.models import User
from sandrocket.time_utils import utc_now

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"


class AuthenticatedUser:
    """Represents the user behind a verified session cookie."""

    def __init__(self, id: int, email: str, display_name: str):
        self.id = id
        self.email = email
        self.display_name = display_name

    def __repr__(self):
        return f"AuthenticatedUser(id={self.id}, email={self.email})"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_session_token(user_id: int, email: str) -> str:
    """Sign a session token for `user_id` valid for `token_ttl_days`."""
    settings = get_settings()
    issued_at = utc_now()
    claims = {
        "sub": str(user_id),
        "email": email,
        "iss": settings.jwt_issuer,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.token_ttl_days),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def verify_session_token(token: str) -> int:
    """
    Return the user id carried by a session token.

    Raises:
        AuthError: If the token is expired, forged or malformed.
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
        )
        return int(claims["sub"])
    except ExpiredSignatureError:
        logger.warning("Expired session token")
        raise AuthError("invalid_token", "Session has expired")
    except (JWTError, KeyError, ValueError):
        logger.warning("Invalid session token")
        raise AuthError("invalid_token", "Invalid session token")


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.token_ttl_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
        path="/",
    )


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """
    Verify the session cookie and return the authenticated user.

    Raises:
        AuthError: If the cookie is missing, invalid, or names a deleted user.
    """
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        raise AuthError("no_token", "Not authenticated")

    user_id = verify_session_token(token)
    user = await session.get(User, user_id)
    if user is None:
        logger.warning(f"Session for unknown user {user_id}")
        raise AuthError("user_not_found", "User no longer exists")

    logger.debug(f"Authenticated user: {user.id} ({user.email})")
    return AuthenticatedUser(id=user.id, email=user.email, display_name=user.display_name)
