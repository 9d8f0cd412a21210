"""
Task routes for the Sand Rocket API.

Anything that changes a task's column or rank goes through the move
orchestrator; only description edits are written directly.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sandrocket.auth import AuthenticatedUser, get_current_user
from sandrocket.database import get_session
from sandrocket.exceptions import NotFoundError
from sandrocket.logging_config import get_logger
from sandrocket.models import Task
from sandrocket.schemas import TaskCreate, TaskListResponse, TaskRead, TaskReorder, TaskUpdate
from sandrocket.services import task_moves
from sandrocket.services.membership import get_epic_for_member, get_task_for_member
from sandrocket.services.task_repository import TaskRepository

logger = get_logger(__name__)

router = APIRouter()


@router.get("/epics/{epic_id}/tasks", response_model=TaskListResponse)
async def list_tasks(
    epic_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    """List an epic's tasks ordered by status, then position."""
    await get_epic_for_member(session, epic_id, user.id)
    tasks = await TaskRepository(session).list_by_epic(epic_id)

    logger.debug(f"Listed {len(tasks)} tasks for epic={epic_id}")

    return TaskListResponse(tasks=tasks)


@router.post("/epics/{epic_id}/tasks", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    epic_id: int,
    task_in: TaskCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Task:
    """Create a task at the end of the epic's backlog."""
    await get_epic_for_member(session, epic_id, user.id)
    return await task_moves.create_task(session, epic_id, user.id, task_in.description)


@router.patch("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    task_in: TaskUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Task:
    """
    Update a task.

    A new status without a position appends the task to that column;
    a position without a status reorders it inside its current column.
    A description sent along with a move is written in the move's
    transaction, so either both apply or neither does.
    """
    task = await get_task_for_member(session, task_id, user.id)
    update_data = task_in.model_dump(exclude_unset=True)

    logger.info(f"Updating task {task_id}: {update_data}")

    description = update_data.get("description")
    new_status = update_data.get("status") or task.status
    new_position = update_data.get("position")

    if new_status != task.status or new_position is not None:
        task = await task_moves.move_task(
            session,
            task_id,
            new_status,
            position=new_position,
            editor_user_id=user.id,
            description=description,
        )
        if task is None:
            raise NotFoundError("Task", str(task_id))
    elif description is not None:
        task = await TaskRepository(session).update(
            task_id,
            description=description,
            last_edited_by_user_id=user.id,
        )

    return task


@router.patch("/tasks/{task_id}/position", response_model=TaskRead)
async def reorder_task(
    task_id: int,
    body: TaskReorder,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Task:
    """Drop a task into an exact slot of a column, possibly in another epic."""
    await get_task_for_member(session, task_id, user.id)

    task = await task_moves.reorder_task(
        session,
        task_id,
        body.status,
        position=body.position,
        epic_id=body.epic_id,
        editor_user_id=user.id,
    )
    if task is None:
        raise NotFoundError("Task", str(task_id))
    return task


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete a task; the rest of its column closes the gap."""
    await get_task_for_member(session, task_id, user.id)
    if not await task_moves.delete_task(session, task_id):
        raise NotFoundError("Task", str(task_id))
