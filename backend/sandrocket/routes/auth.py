"""
Account routes: register, login, refresh and logout.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.auth import (
    clear_session_cookie,
    create_session_token,
    hash_password,
    set_session_cookie,
    verify_password,
    verify_session_token,
)
from sandrocket.config import get_settings
from sandrocket.database import get_session
from sandrocket.exceptions import AuthError, ConflictError
from sandrocket.logging_config import get_logger
from sandrocket.models import User
from sandrocket.schemas import AuthResponse, LoginRequest, RegisterRequest, UserRead

logger = get_logger(__name__)

router = APIRouter()


def _auth_response(response: Response, user: User) -> AuthResponse:
    token = create_session_token(user.id, user.email)
    set_session_cookie(response, token)
    return AuthResponse(token=token, user=UserRead.model_validate(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Create an account and start a session."""
    existing = await session.execute(select(User).where(User.email == body.email))
    if existing.scalars().first():
        raise ConflictError("user_already_exists", "A user with this email already exists")

    existing = await session.execute(select(User).where(User.display_name == body.display_name))
    if existing.scalars().first():
        raise ConflictError("display_name_already_exists", "This display name is already taken")

    user = User(
        email=body.email,
        password_hash=hash_password(body.password),
        display_name=body.display_name,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)

    logger.info(f"Registered user: id={user.id} email={user.email}")

    return _auth_response(response, user)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    result = await session.execute(select(User).where(User.email == body.email))
    user = result.scalars().first()
    if user is None:
        raise AuthError("user_not_found", "No account with this email")
    if not verify_password(body.password, user.password_hash):
        logger.warning(f"Failed login for user {user.id}")
        raise AuthError("invalid_credentials", "Invalid email or password")

    logger.info(f"User logged in: id={user.id}")
    return _auth_response(response, user)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Re-issue the session token carried by the cookie."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        raise AuthError("no_token", "No token provided")

    user = await session.get(User, verify_session_token(token))
    if user is None:
        raise AuthError("user_not_found", "User no longer exists")

    return _auth_response(response, user)


@router.post("/logout")
async def logout(response: Response) -> dict:
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}
