"""
Position ledger for board columns.

Every (epic_id, status) pair is a partition whose task positions form the
contiguous range 0..n-1. The functions here compute which rows must change to
keep that true; they never touch the database themselves, except
`next_append_position`, which asks the repository for the current maximum.

Reorder recomputes the whole affected list(s):
1. Sort the moving task's current partition by position
2. Remove the moving task
3. Insert it into the same list, or into the target partition's list,
   at the requested index clamped to [0, len]
4. Re-index every touched list to 0..n-1
5. Emit a change for each task whose position or partition moved
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sandrocket.models import Task, TaskStatus

OLDEST = datetime.min.replace(tzinfo=timezone.utc)

PartitionKey = tuple[int, TaskStatus]


@dataclass(frozen=True)
class PositionChange:
    """New placement of one task."""
    task_id: int
    epic_id: int
    status: TaskStatus
    position: int


async def next_append_position(repository, epic_id: int, status: TaskStatus) -> int:
    """Position for a task appended to the end of the partition (0 when empty)."""
    return await repository.get_max_position(epic_id, status, default=-1) + 1


def sort_partition(tasks: Iterable[Task]) -> list[Task]:
    """Display order; ties (legacy duplicates) broken by age then id."""
    return sorted(
        tasks,
        key=lambda t: (t.position, t.created_at or OLDEST, t.id or 0),
    )


def clamp_position(position: Optional[int], length: int) -> int:
    """Map a requested index onto [0, length]; None means append."""
    if position is None:
        return length
    return max(0, min(position, length))


def renumber(tasks: list[Task], epic_id: int, status: TaskStatus) -> list[PositionChange]:
    """Changes that place `tasks`, in list order, at 0..n-1 of the partition."""
    key = (epic_id, TaskStatus(status))
    changes = []
    for index, task in enumerate(tasks):
        if task.position != index or task.partition != key:
            changes.append(PositionChange(task.id, epic_id, key[1], index))
    return changes


def renumber_partition(tasks: Iterable[Task]) -> list[PositionChange]:
    """Close gaps and resolve duplicates inside a single partition."""
    ordered = sort_partition(tasks)
    if not ordered:
        return []
    epic_id, status = ordered[0].partition
    return renumber(ordered, epic_id, status)


def plan_reorder(
    source: Iterable[Task],
    target: Optional[Iterable[Task]],
    task: Task,
    target_epic_id: int,
    target_status: TaskStatus,
    target_position: Optional[int],
) -> list[PositionChange]:
    """
    Compute the rows to rewrite when `task` moves.

    Args:
        source: Tasks of the moving task's current partition
        target: Tasks of the target partition, or None for a same-partition move
        task: The moving task (must belong to `source`)
        target_epic_id: Epic of the target partition
        target_status: Status of the target partition
        target_position: Requested index in the target list; None appends

    Returns:
        Changes for every task whose position or partition differs from now.
        Empty when the task is already where it was asked to go.
    """
    source_key = task.partition
    target_key = (target_epic_id, TaskStatus(target_status))

    remaining = [t for t in sort_partition(source) if t.id != task.id]

    if target_key == source_key:
        remaining.insert(clamp_position(target_position, len(remaining)), task)
        return renumber(remaining, *source_key)

    destination = [t for t in sort_partition(target or []) if t.id != task.id]
    destination.insert(clamp_position(target_position, len(destination)), task)

    return renumber(remaining, *source_key) + renumber(destination, *target_key)


def is_contiguous(tasks: Iterable[Task]) -> bool:
    """True when the partition's positions are exactly 0..n-1."""
    positions = sorted(t.position for t in tasks)
    return positions == list(range(len(positions)))
