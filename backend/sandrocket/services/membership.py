"""
Project membership checks shared by every project-scoped route.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.exceptions import ForbiddenError, NotFoundError
from sandrocket.models import Epic, Project, ProjectMember, ProjectRole, Task


async def get_membership(session: AsyncSession, project_id: int, user_id: int) -> ProjectMember | None:
    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    return result.scalars().first()


async def require_member(session: AsyncSession, project_id: int, user_id: int) -> ProjectMember:
    """
    Return the caller's membership of an existing project.

    Raises:
        NotFoundError: If the project does not exist.
        ForbiddenError: If the user is not a member.
    """
    project = await session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", str(project_id))

    member = await get_membership(session, project_id, user_id)
    if member is None:
        raise ForbiddenError()
    return member


async def require_owner(session: AsyncSession, project_id: int, user_id: int) -> ProjectMember:
    member = await require_member(session, project_id, user_id)
    if member.role != ProjectRole.owner:
        raise ForbiddenError("Only the project owner can do this")
    return member


async def get_epic_for_member(session: AsyncSession, epic_id: int, user_id: int) -> Epic:
    """Load an epic and check the user belongs to its project."""
    epic = await session.get(Epic, epic_id)
    if epic is None:
        raise NotFoundError("Epic", str(epic_id))
    await require_member(session, epic.project_id, user_id)
    return epic


async def get_task_for_member(session: AsyncSession, task_id: int, user_id: int) -> Task:
    """Load a task and check the user belongs to the project of its epic."""
    task = await session.get(Task, task_id, populate_existing=True)
    if task is None:
        raise NotFoundError("Task", str(task_id))
    await get_epic_for_member(session, task.epic_id, user_id)
    return task
