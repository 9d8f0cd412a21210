"""
Epic routes for the Sand Rocket API.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.auth import AuthenticatedUser, get_current_user
from sandrocket.database import get_session
from sandrocket.logging_config import get_logger
from sandrocket.models import Epic
from sandrocket.schemas import EpicCreate, EpicListResponse, EpicRead, EpicUpdate
from sandrocket.services.membership import get_epic_for_member, require_member
from sandrocket.time_utils import utc_now

logger = get_logger(__name__)

router = APIRouter()


@router.get("/projects/{project_id}/epics", response_model=EpicListResponse)
async def list_epics(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> EpicListResponse:
    await require_member(session, project_id, user.id)
    result = await session.execute(
        select(Epic).where(Epic.project_id == project_id).order_by(Epic.created_at, Epic.id)
    )
    epics = list(result.scalars().all())

    logger.debug(f"Listed {len(epics)} epics for project={project_id}")

    return EpicListResponse(epics=epics)


@router.post("/projects/{project_id}/epics", response_model=EpicRead, status_code=status.HTTP_201_CREATED)
async def create_epic(
    project_id: int,
    epic_in: EpicCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Epic:
    await require_member(session, project_id, user.id)

    epic = Epic(project_id=project_id, **epic_in.model_dump())
    session.add(epic)
    await session.flush()
    await session.refresh(epic)

    logger.info(f"Created epic: id={epic.id} name='{epic.name}' project={project_id}")

    return epic


@router.patch("/epics/{epic_id}", response_model=EpicRead)
async def update_epic(
    epic_id: int,
    epic_in: EpicUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Epic:
    epic = await get_epic_for_member(session, epic_id, user.id)

    update_data = epic_in.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)

    logger.info(f"Updating epic {epic_id}: {update_data}")

    for field, value in update_data.items():
        setattr(epic, field, value)

    epic.updated_at = utc_now()
    await session.flush()
    await session.refresh(epic)
    return epic


@router.delete("/epics/{epic_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_epic(
    epic_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete an epic together with all of its tasks."""
    epic = await get_epic_for_member(session, epic_id, user.id)

    logger.info(f"Deleting epic {epic_id}: '{epic.name}'")

    await session.delete(epic)
