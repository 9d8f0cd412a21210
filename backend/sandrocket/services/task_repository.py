"""
Persistence collaborator for tasks.

Each method is one small unit of SQL work inside the caller's session; the
caller owns the transaction boundary.
"""

from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.models import Task, TaskStatus
from sandrocket.time_utils import utc_now

UPDATABLE_FIELDS = frozenset({
    "description",
    "epic_id",
    "status",
    "position",
    "last_edited_by_user_id",
})


@dataclass
class NewTask:
    """Fields a caller supplies when creating a task."""
    epic_id: int
    description: str
    creator_user_id: int | None = None


class TaskRepository:
    """SQL-backed task storage over an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, task_in: NewTask, initial_position: int) -> Task:
        """Insert a backlog task at an explicit position."""
        task = Task(
            epic_id=task_in.epic_id,
            description=task_in.description,
            creator_user_id=task_in.creator_user_id,
            status=TaskStatus.backlog,
            position=initial_position,
        )
        self.session.add(task)
        await self.session.flush()
        await self.session.refresh(task)
        return task

    async def get(self, task_id: int) -> Task | None:
        # Always re-read the row; another request may have moved the task
        return await self.session.get(Task, task_id, populate_existing=True)

    async def list_by_epic(self, epic_id: int) -> list[Task]:
        """All tasks of an epic ordered by (status, position, created_at)."""
        query = (
            select(Task)
            .where(Task.epic_id == epic_id)
            .order_by(Task.status, Task.position, Task.created_at, Task.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_partition(self, epic_id: int, status: TaskStatus) -> list[Task]:
        """Tasks of one (epic, status) partition in display order."""
        query = (
            select(Task)
            .where(Task.epic_id == epic_id, Task.status == TaskStatus(status))
            .order_by(Task.position, Task.created_at, Task.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_max_position(self, epic_id: int, status: TaskStatus, default: int = 0) -> int:
        """Highest position in the partition, or `default` when it is empty."""
        query = select(func.max(Task.position)).where(
            Task.epic_id == epic_id,
            Task.status == TaskStatus(status),
        )
        result = await self.session.execute(query)
        max_position = result.scalar()
        return default if max_position is None else max_position

    async def update(self, task_id: int, **changes) -> Task | None:
        """
        Partial update. Returns None if the task does not exist.

        Raises:
            ValueError: If a field outside UPDATABLE_FIELDS is passed.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {sorted(unknown)}")

        task = await self.session.get(Task, task_id)
        if task is None:
            return None

        for field, value in changes.items():
            setattr(task, field, value)
        task.updated_at = utc_now()

        self.session.add(task)
        await self.session.flush()
        return task

    async def delete(self, task_id: int) -> bool:
        task = await self.session.get(Task, task_id)
        if task is None:
            return False
        await self.session.delete(task)
        await self.session.flush()
        return True
