"""
Project backup export: a zip with a plain-text summary and every document.
"""

import io
import re
import zipfile
from datetime import datetime
from pathlib import PurePath

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.logging_config import get_logger
from sandrocket.models import Document, Epic, Project, Task, TaskStatus, User
from sandrocket.services.documents import document_path, list_documents
from sandrocket.services.task_repository import TaskRepository
from sandrocket.time_utils import utc_now

logger = get_logger(__name__)

STATUS_LABELS = {
    TaskStatus.backlog: "Backlog",
    TaskStatus.in_progress: "In Progress",
    TaskStatus.done: "Done",
}


def safe_project_name(name: str) -> str:
    """Project name reduced to characters that are safe in a file name."""
    cleaned = re.sub(r"[^\w \-]", "", name).strip()
    return cleaned or "project"


def _date(value: datetime) -> str:
    return value.strftime("%d/%m/%Y")


def render_summary(
    project: Project,
    epic_tasks: list[tuple[Epic, list[Task]]],
    documents: list[Document],
    user_names: dict[int, str],
    exported_at: datetime,
) -> str:
    """Human-readable project summary grouped by epic and status."""
    lines = [project.name, "=" * len(project.name), f"Exported on {exported_at.strftime('%d %B %Y')}", ""]
    if project.description:
        lines += [project.description, ""]

    for epic, tasks in epic_tasks:
        lines += [epic.name, "-" * len(epic.name)]
        if epic.description:
            lines.append(epic.description)
        if not tasks:
            lines += ["  No tasks", ""]
            continue

        for status in TaskStatus:
            matching = [t for t in tasks if t.status == status]
            if not matching:
                continue
            lines.append(f"  {STATUS_LABELS[status]} ({len(matching)})")
            for task in matching:
                creator = user_names.get(task.creator_user_id, "Unknown")
                lines.append(f"    * {task.description}")
                lines.append(
                    f"      By {creator} | Created {_date(task.created_at)} | Updated {_date(task.updated_at)}"
                )
        lines.append("")

    if documents:
        lines += ["Documents", "---------"]
        for document in documents:
            lines.append(f"  * {document.original_filename}")
            lines.append(f"    {document.size_bytes / 1024:.0f} KB | Uploaded {_date(document.created_at)}")

    return "\n".join(lines) + "\n"


async def build_project_export(session: AsyncSession, project: Project) -> tuple[str, bytes]:
    """
    Build the backup archive for a project.

    Returns:
        (zip file name, zip bytes)
    """
    result = await session.execute(
        select(Epic).where(Epic.project_id == project.id).order_by(Epic.created_at, Epic.id)
    )
    epics = list(result.scalars().all())

    repository = TaskRepository(session)
    epic_tasks = [(epic, await repository.list_by_epic(epic.id)) for epic in epics]
    documents = await list_documents(session, project.id)

    user_ids = {t.creator_user_id for _, tasks in epic_tasks for t in tasks if t.creator_user_id is not None}
    user_names = {}
    if user_ids:
        users = await session.execute(select(User).where(User.id.in_(user_ids)))
        user_names = {u.id: u.display_name for u in users.scalars().all()}

    safe_name = safe_project_name(project.name)
    root = f"{safe_name}-backup"
    summary = render_summary(project, epic_tasks, documents, user_names, utc_now())

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=5) as archive:
        archive.writestr(f"{root}/project-summary.txt", summary)

        used_names = set()
        for document in documents:
            path = document_path(document)
            if not path.exists():
                logger.warning(f"Skipping missing file for document {document.id}")
                continue
            name = PurePath(document.original_filename).name or document.stored_filename
            if name in used_names:
                name = f"{document.id}-{name}"
            used_names.add(name)
            archive.write(path, f"{root}/documents/{name}")

    logger.info(f"Exported project {project.id}: {len(epics)} epics, {len(documents)} documents")
    return f"{safe_name}-backup.zip", buffer.getvalue()
