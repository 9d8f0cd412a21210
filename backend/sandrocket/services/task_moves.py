"""
Task move orchestrator.

Wraps every position-changing operation (create, move, reorder, delete) in
the partition locks and one database transaction so that a partition's
positions stay 0..n-1 after each request.

The orchestrator commits inside the lock. A commit that happened after the
lock was released would let a waiting request read the partition before the
previous rewrite became visible.
"""

from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sandrocket.config import get_settings
from sandrocket.exceptions import (
    CrossEpicMoveDisabledError,
    CrossProjectMoveError,
    NotFoundError,
    ReorderFailedError,
)
from sandrocket.logging_config import get_logger
from sandrocket.models import Epic, Task, TaskStatus
from sandrocket.services.locks import partition_locks
from sandrocket.services.positions import (
    PartitionKey,
    PositionChange,
    next_append_position,
    plan_reorder,
    renumber_partition,
)
from sandrocket.services.task_repository import NewTask, TaskRepository

logger = get_logger(__name__)

# A task can be moved by someone else while we wait for its partition lock;
# each attempt re-reads it and tries again
MAX_LOCK_ATTEMPTS = 5

T = TypeVar("T")


async def create_task(
    session: AsyncSession,
    epic_id: int,
    creator_user_id: Optional[int],
    description: str,
) -> Task:
    """Append a new task to the end of the epic's backlog."""
    repository = TaskRepository(session)
    key = (epic_id, TaskStatus.backlog)

    async with partition_locks.hold(key):
        position = await next_append_position(repository, epic_id, TaskStatus.backlog)
        task = await repository.create(
            NewTask(epic_id=epic_id, description=description, creator_user_id=creator_user_id),
            position,
        )
        await session.commit()

    logger.info(f"Created task: id={task.id}, epic={epic_id}, position={position}")
    return task


async def reorder_task(
    session: AsyncSession,
    task_id: int,
    status: TaskStatus,
    position: Optional[int] = None,
    epic_id: Optional[int] = None,
    editor_user_id: Optional[int] = None,
    description: Optional[str] = None,
) -> Optional[Task]:
    """
    Move a task to `position` of the (epic_id, status) partition.

    Args:
        session: Database session
        task_id: Task to move
        status: Target column
        position: Target index, clamped to the column's length; None appends
        epic_id: Target epic; None keeps the task's current epic
        editor_user_id: Recorded as the task's last editor
        description: New description, written in the same transaction

    Returns:
        The task with its new placement, or None if it does not exist.

    Raises:
        CrossEpicMoveDisabledError: Moving between epics is turned off
        NotFoundError: Target epic does not exist
        CrossProjectMoveError: Target epic belongs to another project
        ReorderFailedError: The rewrite failed and was rolled back
    """
    repository = TaskRepository(session)
    target_status = TaskStatus(status)

    moved_fields = {}
    if editor_user_id is not None:
        moved_fields["last_edited_by_user_id"] = editor_user_id
    if description is not None:
        moved_fields["description"] = description

    def target_for(task: Task) -> PartitionKey:
        return (task.epic_id if epic_id is None else epic_id, target_status)

    async def apply(task: Task) -> Task:
        target_key = target_for(task)
        if target_key[0] != task.epic_id:
            await _check_cross_epic_move(session, task, target_key[0])

        source = await repository.list_partition(*task.partition)
        target = None
        if target_key != task.partition:
            target = await repository.list_partition(*target_key)

        changes = plan_reorder(source, target, task, target_key[0], target_key[1], position)
        if not changes and description is None:
            logger.debug(f"Task {task_id} already at {target_key}:{position}, nothing to write")
            return task

        await _write_changes(session, repository, task.id, changes, moved_fields)
        logger.info(
            f"Moved task {task_id} to epic={task.epic_id}, status={task.status.value}, "
            f"position={task.position} ({len(changes)} rows rewritten)"
        )
        return task

    return await _with_task_locked(
        repository,
        task_id,
        lambda task: (task.partition, target_for(task)),
        apply,
    )


async def move_task(
    session: AsyncSession,
    task_id: int,
    status: TaskStatus,
    position: Optional[int] = None,
    editor_user_id: Optional[int] = None,
    description: Optional[str] = None,
) -> Optional[Task]:
    """Change a task's column within its epic. Appends when no position is given."""
    return await reorder_task(
        session,
        task_id,
        status,
        position=position,
        editor_user_id=editor_user_id,
        description=description,
    )


async def delete_task(session: AsyncSession, task_id: int) -> bool:
    """Delete a task and close the gap it leaves in its column."""
    repository = TaskRepository(session)

    async def apply(task: Task) -> bool:
        key = task.partition
        try:
            await repository.delete(task.id)
            siblings = await repository.list_partition(*key)
            for change in renumber_partition(siblings):
                await repository.update(change.task_id, position=change.position)
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error(f"Failed to delete task {task_id}: {exc}")
            raise ReorderFailedError(task_id) from exc

        logger.info(f"Deleted task: id={task_id}, partition={key[0]}:{key[1].value}")
        return True

    deleted = await _with_task_locked(repository, task_id, lambda task: (task.partition,), apply)
    return bool(deleted)


async def _with_task_locked(
    repository: TaskRepository,
    task_id: int,
    keys_for: Callable[[Task], tuple[PartitionKey, ...]],
    action: Callable[[Task], Awaitable[T]],
) -> Optional[T]:
    """
    Run `action` with the locks of the task's partitions held.

    The task is re-read after the locks are acquired. If it left the
    partitions we locked while we were waiting, release and try again.
    """
    for _ in range(MAX_LOCK_ATTEMPTS):
        task = await repository.get(task_id)
        if task is None:
            return None
        keys = keys_for(task)

        async with partition_locks.hold(*keys):
            task = await repository.get(task_id)
            if task is None:
                return None
            if keys_for(task) == keys:
                return await action(task)

        logger.debug(f"Task {task_id} moved while waiting for its partition lock, retrying")

    logger.error(f"Gave up locking task {task_id} after {MAX_LOCK_ATTEMPTS} attempts")
    raise ReorderFailedError(task_id)


async def _check_cross_epic_move(session: AsyncSession, task: Task, target_epic_id: int) -> None:
    if not get_settings().allow_cross_epic_moves:
        raise CrossEpicMoveDisabledError(task.id, target_epic_id)

    target_epic = await session.get(Epic, target_epic_id)
    if target_epic is None:
        raise NotFoundError("Epic", str(target_epic_id))

    source_epic = await session.get(Epic, task.epic_id)
    if source_epic is not None and source_epic.project_id != target_epic.project_id:
        raise CrossProjectMoveError(source_epic.project_id, target_epic.project_id)


async def _write_changes(
    session: AsyncSession,
    repository: TaskRepository,
    moved_task_id: int,
    changes: list[PositionChange],
    moved_fields: dict,
) -> None:
    """Persist a reorder plan atomically; roll everything back on any failure."""
    try:
        for change in changes:
            fields = {
                "epic_id": change.epic_id,
                "status": change.status,
                "position": change.position,
            }
            if change.task_id == moved_task_id:
                fields.update(moved_fields)
            await repository.update(change.task_id, **fields)
        if moved_fields and all(change.task_id != moved_task_id for change in changes):
            await repository.update(moved_task_id, **moved_fields)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error(f"Reorder of task {moved_task_id} failed, rolled back: {exc}")
        raise ReorderFailedError(moved_task_id) from exc
