"""
Invitation routes: owners mint single-use tokens, invitees redeem them.
"""

import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.auth import AuthenticatedUser, get_current_user
from sandrocket.config import get_settings
from sandrocket.database import get_session
from sandrocket.exceptions import InvalidInvitationError, NotFoundError
from sandrocket.logging_config import get_logger
from sandrocket.models import ProjectInvitation, ProjectMember, ProjectRole
from sandrocket.schemas import InvitationAccept, InvitationAcceptResponse, InvitationRead
from sandrocket.services.membership import get_membership, require_owner
from sandrocket.time_utils import utc_now

logger = get_logger(__name__)

router = APIRouter()


async def _find_invitation(session: AsyncSession, token: str) -> ProjectInvitation | None:
    result = await session.execute(select(ProjectInvitation).where(ProjectInvitation.token == token))
    return result.scalars().first()


@router.post(
    "/projects/{project_id}/invitations",
    response_model=InvitationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ProjectInvitation:
    """Create a single-use invitation link. Owner only."""
    await require_owner(session, project_id, user.id)

    invitation = ProjectInvitation(
        project_id=project_id,
        token=secrets.token_urlsafe(32),
        created_by_user_id=user.id,
        expires_at=utc_now() + timedelta(days=get_settings().invitation_ttl_days),
    )
    session.add(invitation)
    await session.flush()
    await session.refresh(invitation)

    logger.info(f"Created invitation: id={invitation.id} project={project_id} by={user.id}")

    return invitation


@router.get("/invitations/{token}", response_model=InvitationRead)
async def get_invitation(
    token: str,
    session: AsyncSession = Depends(get_session),
) -> ProjectInvitation:
    """Look up an invitation; unknown, used and expired tokens are all not found."""
    invitation = await _find_invitation(session, token)
    if invitation is None or not invitation.is_usable(utc_now()):
        raise NotFoundError("Invitation", "token")
    return invitation


@router.post("/invitations/accept", response_model=InvitationAcceptResponse)
async def accept_invitation(
    body: InvitationAccept,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> InvitationAcceptResponse:
    """
    Redeem an invitation.

    A user who already belongs to the project only consumes the token.
    Everyone else joins as a contributor.
    """
    now = utc_now()
    invitation = await _find_invitation(session, body.token)
    if invitation is None or not invitation.is_usable(now):
        raise InvalidInvitationError()

    already_member = await get_membership(session, invitation.project_id, user.id) is not None
    if not already_member:
        session.add(ProjectMember(
            project_id=invitation.project_id,
            user_id=user.id,
            role=ProjectRole.contributor,
        ))

    invitation.used_by_user_id = user.id
    invitation.used_at = now
    await session.flush()

    logger.info(
        f"Invitation {invitation.id} accepted by user={user.id} "
        f"project={invitation.project_id} already_member={already_member}"
    )

    return InvitationAcceptResponse(project_id=invitation.project_id, already_member=already_member)
