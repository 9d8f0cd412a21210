#!/usr/bin/env python3
"""
Seed script to create a demo account with a ready-to-use board.

Creates:
- A demo user (password printed at the end)
- A project owned by that user
- A "General" epic with a few welcome tasks in the backlog
- Optionally, extra tasks spread over every column

Usage:
    python -m scripts.seed [--email demo@example.com] [--tasks 0] [--clear]

Options:
    --email      Email of the demo user
    --password   Password of the demo user
    --project    Name of the project to create
    --tasks N    Extra tasks to spread over the three columns (default: 0)
    --clear      Delete every row before seeding
"""

import argparse
import asyncio
import random
import time

from sqlmodel import SQLModel, select

from sandrocket.auth import hash_password
from sandrocket.database import async_session_maker, engine, init_db
from sandrocket.models import Epic, Project, ProjectMember, ProjectRole, TaskStatus, User
from sandrocket.services import task_moves

WELCOME_TASKS = [
    "Welcome to Sand Rocket! 🚀",
    "Create your first epic",
    "Add some tasks to get started",
]


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with engine.begin() as conn:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await conn.execute(table.delete())
    print("Data cleared.")


async def get_or_create_user(email: str, password: str) -> User:
    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalars().first()
        if user:
            print(f"Using existing user: {user.email} ({user.id})")
            return user

        user = User(email=email, password_hash=hash_password(password), display_name=email.split("@")[0])
        session.add(user)
        await session.commit()
        await session.refresh(user)
        print(f"Created user: {user.email} ({user.id})")
        return user


async def create_board(user: User, name: str) -> tuple[Project, Epic]:
    """Create a project with its owner membership and a General epic."""
    async with async_session_maker() as session:
        project = Project(owner_user_id=user.id, name=name, description="Demo project")
        session.add(project)
        await session.flush()

        session.add(ProjectMember(project_id=project.id, user_id=user.id, role=ProjectRole.owner))
        epic = Epic(project_id=project.id, name="General")
        session.add(epic)
        await session.commit()
        await session.refresh(project)
        await session.refresh(epic)
        return project, epic


async def add_tasks(epic: Epic, user: User, extra: int) -> None:
    """Create tasks through the move orchestrator so positions stay contiguous."""
    async with async_session_maker() as session:
        for description in WELCOME_TASKS:
            await task_moves.create_task(session, epic.id, user.id, description)

        statuses = list(TaskStatus)
        for i in range(extra):
            task = await task_moves.create_task(session, epic.id, user.id, f"Demo task #{i + 1}")
            status = random.choice(statuses)
            if status != TaskStatus.backlog:
                await task_moves.move_task(session, task.id, status, editor_user_id=user.id)


async def main():
    parser = argparse.ArgumentParser(description="Seed the database with a demo board")
    parser.add_argument("--email", type=str, default="demo@example.com", help="Demo user email")
    parser.add_argument("--password", type=str, default="sandrocket-demo", help="Demo user password")
    parser.add_argument("--project", type=str, default="Sand Rocket Demo", help="Project name")
    parser.add_argument("--tasks", type=int, default=0, help="Extra tasks to create")
    parser.add_argument("--clear", action="store_true", help="Clear existing data first")
    args = parser.parse_args()

    print(f"=== Sand Rocket Seed Script ===")

    # Initialize database
    await init_db()

    if args.clear:
        await clear_data()

    user = await get_or_create_user(args.email.lower(), args.password)

    project, epic = await create_board(user, args.project)
    print(f"Created project: {project.name} ({project.id})")

    start_time = time.time()
    await add_tasks(epic, user, args.tasks)
    print(f"Created {len(WELCOME_TASKS) + args.tasks} tasks in {time.time() - start_time:.2f}s")

    print(f"\n=== Seeding Complete ===")
    print(f"Login: {args.email.lower()} / {args.password}")
    print(f"Project ID: {project.id}")


if __name__ == "__main__":
    asyncio.run(main())
