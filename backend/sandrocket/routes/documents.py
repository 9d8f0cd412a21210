"""
Document and export routes for the Sand Rocket API.
"""

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from sandrocket.auth import AuthenticatedUser, get_current_user
from sandrocket.config import get_settings
from sandrocket.database import get_session
from sandrocket.exceptions import FileTooLargeError, NotFoundError
from sandrocket.logging_config import get_logger
from sandrocket.models import Document, DocumentAction, Project, User
from sandrocket.schemas import DocumentActivityRead, DocumentListResponse, DocumentRead
from sandrocket.services import documents as document_service
from sandrocket.services.export import build_project_export
from sandrocket.services.membership import require_member

logger = get_logger(__name__)

router = APIRouter()


async def _display_names(session: AsyncSession, user_ids: set[int]) -> dict[int, str]:
    if not user_ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(user_ids)))
    return {u.id: u.display_name for u in result.scalars().all()}


def _document_read(document: Document, names: dict[int, str]) -> DocumentRead:
    return DocumentRead(
        id=document.id,
        project_id=document.project_id,
        uploader_user_id=document.uploader_user_id,
        uploader_display_name=names.get(document.uploader_user_id),
        original_filename=document.original_filename,
        mime_type=document.mime_type,
        size_bytes=document.size_bytes,
        created_at=document.created_at,
    )


async def _get_document_for_member(session: AsyncSession, document_id: int, user_id: int) -> Document:
    document = await session.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document", str(document_id))
    await require_member(session, document.project_id, user_id)
    return document


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    project_id: int,
    file: UploadFile = File(...),
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DocumentRead:
    """Upload a file to the project's document box."""
    await require_member(session, project_id, user.id)

    # Never read more than one byte past the limit
    limit = get_settings().max_file_size_bytes
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise FileTooLargeError(file.size or len(content), limit)

    document = await document_service.upload_document(
        session,
        project_id,
        user.id,
        file.filename or "upload",
        file.content_type or "application/octet-stream",
        content,
    )
    return _document_read(document, {user.id: user.display_name})


@router.get("/projects/{project_id}/documents", response_model=DocumentListResponse)
async def list_documents(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DocumentListResponse:
    """Documents, recent activity and storage usage of a project."""
    await require_member(session, project_id, user.id)

    documents = await document_service.list_documents(session, project_id)
    activity = await document_service.list_activity(session, project_id)
    names = await _display_names(
        session,
        {d.uploader_user_id for d in documents} | {a.user_id for a in activity},
    )

    return DocumentListResponse(
        documents=[_document_read(d, names) for d in documents],
        activity=[
            DocumentActivityRead(
                id=a.id,
                document_id=a.document_id,
                user_id=a.user_id,
                user_display_name=names.get(a.user_id),
                action=a.action,
                filename=a.filename,
                created_at=a.created_at,
            )
            for a in activity
        ],
        total_size_bytes=await document_service.get_total_size(session, project_id),
        max_size_bytes=get_settings().max_project_storage_bytes,
    )


async def _serve(
    session: AsyncSession,
    document_id: int,
    user: AuthenticatedUser,
    action: DocumentAction,
    disposition: str,
) -> FileResponse:
    document = await _get_document_for_member(session, document_id, user.id)
    path = document_service.document_path(document)
    if not path.exists():
        logger.error(f"Document {document_id} has no file at {path}")
        raise NotFoundError("Document", str(document_id))

    await document_service.log_activity(
        session, document.project_id, user.id, action, document.original_filename, document.id
    )

    return FileResponse(
        path,
        media_type=document.mime_type,
        headers={
            "Content-Disposition": document_service.content_disposition(disposition, document.original_filename)
        },
    )


@router.get("/documents/{document_id}/view")
async def view_document(
    document_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FileResponse:
    return await _serve(session, document_id, user, DocumentAction.viewed, "inline")


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> FileResponse:
    return await _serve(session, document_id, user, DocumentAction.downloaded, "attachment")


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> None:
    document = await _get_document_for_member(session, document_id, user.id)
    await document_service.delete_document(session, document, user.id)


@router.get("/projects/{project_id}/export")
async def export_project(
    project_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    """Download a zip backup of the project."""
    await require_member(session, project_id, user.id)
    project = await session.get(Project, project_id)

    filename, archive = await build_project_export(session, project)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": document_service.content_disposition("attachment", filename)},
    )
