"""
Project routes for the Sand Rocket API.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.auth import AuthenticatedUser, get_current_user
from sandrocket.database import get_session
from sandrocket.logging_config import get_logger
from sandrocket.models import Project, ProjectMember, ProjectRole, User
from sandrocket.schemas import (
    MemberListResponse,
    MemberRead,
    ProjectCreate,
    ProjectListResponse,
    ProjectRead,
    ProjectUpdate,
)
from sandrocket.services.documents import cleanup_project_files
from sandrocket.services.membership import require_member, require_owner
from sandrocket.time_utils import utc_now

logger = get_logger(__name__)

router = APIRouter()


def _project_read(project: Project, role: ProjectRole) -> ProjectRead:
    return ProjectRead.model_validate(project).model_copy(update={"role": role})


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ProjectRead:
    """Create a new project; the creator becomes its owner."""
    project = Project(owner_user_id=user.id, **project_in.model_dump())
    session.add(project)
    await session.flush()

    session.add(ProjectMember(project_id=project.id, user_id=user.id, role=ProjectRole.owner))
    await session.flush()
    await session.refresh(project)

    logger.info(f"Created project: id={project.id} name='{project.name}' owner={user.id}")

    return _project_read(project, ProjectRole.owner)


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ProjectListResponse:
    """List the projects the caller is a member of, with the caller's role."""
    result = await session.execute(
        select(Project, ProjectMember.role)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .where(ProjectMember.user_id == user.id)
        .order_by(Project.created_at, Project.id)
    )
    projects = [_project_read(project, role) for project, role in result.all()]

    logger.debug(f"Listed {len(projects)} projects for user={user.id}")

    return ProjectListResponse(projects=projects)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ProjectRead:
    member = await require_member(session, project_id, user.id)
    project = await session.get(Project, project_id)
    return _project_read(project, member.role)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: int,
    project_in: ProjectUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ProjectRead:
    """Update a project's name or description."""
    member = await require_member(session, project_id, user.id)
    project = await session.get(Project, project_id)

    update_data = project_in.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)

    logger.info(f"Updating project {project_id}: {update_data}")

    for field, value in update_data.items():
        setattr(project, field, value)

    project.updated_at = utc_now()
    await session.flush()
    await session.refresh(project)
    return _project_read(project, member.role)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete a project with its epics, tasks and documents. Owner only."""
    await require_owner(session, project_id, user.id)
    project = await session.get(Project, project_id)

    logger.info(f"Deleting project {project_id}: '{project.name}'")

    await session.delete(project)
    await session.commit()
    cleanup_project_files(project_id)


@router.get("/{project_id}/members", response_model=MemberListResponse)
async def list_members(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MemberListResponse:
    await require_member(session, project_id, user.id)
    result = await session.execute(
        select(ProjectMember, User)
        .join(User, User.id == ProjectMember.user_id)
        .where(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.created_at, ProjectMember.id)
    )
    members = [
        MemberRead(
            user_id=u.id,
            email=u.email,
            display_name=u.display_name,
            role=m.role,
            joined_at=m.created_at,
        )
        for m, u in result.all()
    ]
    return MemberListResponse(members=members)
