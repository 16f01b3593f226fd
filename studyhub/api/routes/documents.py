"""Document upload, download and delete routes."""

import logging
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, File, Response, UploadFile, status
from sqlalchemy import select

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Document, Folder
from studyhub.schemas.documents import (
    DocumentRead,
    UploadBatchResponse,
    UploadResultRead,
    UploadStatus,
)
from studyhub.services import upload_workflow
from studyhub.services.uploads import UploadFileData

logger = logging.getLogger(__name__)
router = APIRouter(tags=["documents"])


def content_disposition(file_name: str) -> str:
    """
    Attachment header for `file_name`.

    Header values are latin-1, so the real name goes in the RFC 5987
    `filename*` parameter and `filename` carries an ASCII fallback.
    """
    fallback = file_name.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(file_name, safe="")}'


@router.post(
    "/folders/{folder_id}/documents",
    response_model=UploadBatchResponse,
)
async def upload_documents(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    files: list[UploadFile] | None = File(None),
) -> UploadBatchResponse:
    """
    Upload files into a folder.

    Every file gets a result in input order: uploaded, rejected (size or
    type) or failed (storage error after retries).
    """
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)

    batch = []
    for upload in files or []:
        data = await upload.read()
        batch.append(
            UploadFileData(
                name=upload.filename or "",
                content_type=upload.content_type,
                size=len(data),
                data=data,
            )
        )

    results = await upload_workflow.upload_files(db, batch, folder_id, current_user.id)
    counts = {s: sum(1 for r in results if r.status == s) for s in UploadStatus}
    logger.info(
        "Upload batch for folder %s: %d uploaded, %d rejected, %d failed",
        folder_id, counts[UploadStatus.UPLOADED], counts[UploadStatus.REJECTED], counts[UploadStatus.FAILED],
    )
    return UploadBatchResponse(
        results=[
            UploadResultRead(
                name=r.name,
                status=r.status,
                document=DocumentRead.model_validate(r.document) if r.document else None,
                error=r.error,
                reason=r.reason,
            )
            for r in results
        ],
        uploaded=counts[UploadStatus.UPLOADED],
        rejected=counts[UploadStatus.REJECTED],
        failed=counts[UploadStatus.FAILED],
    )


@router.get("/folders/{folder_id}/documents", response_model=list[DocumentRead])
async def list_documents(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> list[DocumentRead]:
    """List a folder's documents, oldest first."""
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    result = await db.execute(
        select(Document)
        .where(Document.folder_id == folder_id, Document.user_id == current_user.id)
        .order_by(Document.created_at, Document.name)
    )
    return [DocumentRead.model_validate(d) for d in result.scalars()]


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> Response:
    """Return a document's bytes as an attachment."""
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)
    data = await upload_workflow.download_document(document)
    return Response(
        content=data,
        media_type=document.content_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(document.name)},
    )


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete a document's metadata and stored bytes."""
    document = await get_user_resource_or_404(db, Document, document_id, current_user.id)
    await upload_workflow.delete_document(db, document)
