#!/usr/bin/env python3
"""
Renumber every (epic, status) column to 0..n-1.

Data written before positions were kept contiguous may contain gaps or
duplicates. Duplicates keep their creation order.

Usage:
    python -m scripts.repair_positions [--dry-run]
"""

import argparse
import asyncio

from sqlmodel import select

from sandrocket.database import async_session_maker, init_db
from sandrocket.models import Epic, TaskStatus
from sandrocket.services.locks import partition_locks
from sandrocket.services.positions import renumber_partition
from sandrocket.services.task_repository import TaskRepository


async def repair(dry_run: bool) -> int:
    """Returns the number of tasks whose position changed."""
    changed = 0
    async with async_session_maker() as session:
        repository = TaskRepository(session)
        epic_ids = (await session.execute(select(Epic.id).order_by(Epic.id))).scalars().all()

        for epic_id in epic_ids:
            for status in TaskStatus:
                async with partition_locks.hold((epic_id, status)):
                    tasks = await repository.list_partition(epic_id, status)
                    changes = renumber_partition(tasks)
                    for change in changes:
                        print(f"  epic={epic_id} {status.value}: task {change.task_id} -> {change.position}")
                        if not dry_run:
                            await repository.update(change.task_id, position=change.position)
                    changed += len(changes)

        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    return changed


async def main():
    parser = argparse.ArgumentParser(description="Repair task positions")
    parser.add_argument("--dry-run", action="store_true", help="Show changes without writing them")
    args = parser.parse_args()

    await init_db()
    changed = await repair(args.dry_run)

    verb = "Would change" if args.dry_run else "Changed"
    print(f"✓ {verb} {changed} task positions")


if __name__ == "__main__":
    asyncio.run(main())
