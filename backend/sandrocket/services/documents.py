"""
Project document storage.

Files are written to `{upload_dir}/{project_id}/{uuid}{ext}`; the database
keeps the metadata and an activity log of who uploaded, viewed, downloaded
or deleted what.
"""

import shutil
import uuid
from pathlib import Path
from urllib.parse import quote

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.config import get_settings
from sandrocket.exceptions import FileTooLargeError, StorageQuotaExceededError
from sandrocket.logging_config import get_logger
from sandrocket.models import Document, DocumentAction, DocumentActivity

logger = get_logger(__name__)

ACTIVITY_LIMIT = 20


def project_dir(project_id: int) -> Path:
    return get_settings().upload_dir / str(project_id)


def document_path(document: Document) -> Path:
    return project_dir(document.project_id) / document.stored_filename


def content_disposition(disposition: str, filename: str) -> str:
    """Header value with an ASCII fallback and an RFC 5987 UTF-8 name."""
    ascii_name = "".join(c if 0x20 <= ord(c) <= 0x7E and c not in '"\\' else "_" for c in filename)
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


async def get_total_size(session: AsyncSession, project_id: int) -> int:
    result = await session.execute(
        select(func.coalesce(func.sum(Document.size_bytes), 0)).where(Document.project_id == project_id)
    )
    return int(result.scalar())


async def log_activity(
    session: AsyncSession,
    project_id: int,
    user_id: int,
    action: DocumentAction,
    filename: str,
    document_id: int | None = None,
) -> DocumentActivity:
    entry = DocumentActivity(
        document_id=document_id,
        project_id=project_id,
        user_id=user_id,
        action=action,
        filename=filename,
    )
    session.add(entry)
    await session.flush()
    return entry


async def upload_document(
    session: AsyncSession,
    project_id: int,
    user_id: int,
    filename: str,
    mime_type: str,
    content: bytes,
) -> Document:
    """
    Store an uploaded file and record it.

    Raises:
        FileTooLargeError: File exceeds the per-file limit.
        StorageQuotaExceededError: Project would exceed its storage quota.
    """
    settings = get_settings()
    size = len(content)
    if size > settings.max_file_size_bytes:
        raise FileTooLargeError(size, settings.max_file_size_bytes)

    used = await get_total_size(session, project_id)
    if used + size > settings.max_project_storage_bytes:
        raise StorageQuotaExceededError(used, settings.max_project_storage_bytes)

    directory = project_dir(project_id)
    directory.mkdir(parents=True, exist_ok=True)
    stored_filename = f"{uuid.uuid4()}{Path(filename).suffix}"
    stored_path = directory / stored_filename
    stored_path.write_bytes(content)

    document = Document(
        project_id=project_id,
        uploader_user_id=user_id,
        original_filename=filename,
        stored_filename=stored_filename,
        mime_type=mime_type or "application/octet-stream",
        size_bytes=size,
    )
    try:
        session.add(document)
        await session.flush()
        await session.refresh(document)
        await log_activity(session, project_id, user_id, DocumentAction.uploaded, filename, document.id)
        await session.commit()
    except Exception:
        await session.rollback()
        stored_path.unlink(missing_ok=True)
        logger.error(f"Upload to project {project_id} failed; removed {stored_filename}")
        raise

    logger.info(f"Uploaded document: id={document.id} project={project_id} size={size}")
    return document


async def list_documents(session: AsyncSession, project_id: int) -> list[Document]:
    result = await session.execute(
        select(Document)
        .where(Document.project_id == project_id)
        .order_by(Document.created_at.desc(), Document.id.desc())
    )
    return list(result.scalars().all())


async def list_activity(session: AsyncSession, project_id: int, limit: int = ACTIVITY_LIMIT) -> list[DocumentActivity]:
    """Latest activity entries of a project, newest first."""
    result = await session.execute(
        select(DocumentActivity)
        .where(DocumentActivity.project_id == project_id)
        .order_by(DocumentActivity.created_at.desc(), DocumentActivity.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def delete_document(session: AsyncSession, document: Document, user_id: int) -> None:
    """Log the deletion and drop the row; the file goes once the row is gone."""
    document_id, project_id = document.id, document.project_id
    path = document_path(document)

    await log_activity(session, project_id, user_id, DocumentAction.deleted, document.original_filename)
    await session.delete(document)
    await session.commit()

    if path.exists():
        path.unlink()
    else:
        logger.warning(f"Document {document_id} file already missing: {path}")
    logger.info(f"Deleted document: id={document_id} project={project_id}")


def cleanup_project_files(project_id: int) -> None:
    """Remove a project's upload directory. Rows go with the project's cascade."""
    directory = project_dir(project_id)
    if directory.exists():
        shutil.rmtree(directory)
        logger.info(f"Removed upload directory for project {project_id}")
