"""Document upload workflow: validation, storage upload and metadata rows."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import Document
from studyhub.db.upsert import upsert
from studyhub.errors import ErrorKind, StorageError, StudyHubError
from studyhub.schemas.documents import UploadStatus
from studyhub.services.retry import RetryPolicy, retry
from studyhub.services.storage import StorageService, document_path, storage_service

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class UploadFileData:
    """A file received from the client."""

    name: str
    content_type: str | None
    size: int
    data: bytes


@dataclass
class UploadResult:
    """Outcome for one file in a batch."""

    name: str
    status: UploadStatus
    document: Document | None = None
    error: ErrorKind | None = None
    reason: str | None = None


def rejection_reason(
    file: UploadFileData,
    max_size: int | None = None,
    allowed_types: Iterable[str] | None = None,
) -> str | None:
    """Return why `file` cannot be uploaded, or None if it is acceptable."""
    max_size = settings.max_upload_size_bytes if max_size is None else max_size
    allowed_types = settings.allowed_upload_types if allowed_types is None else allowed_types

    if not file.name or "/" in file.name:
        return "Invalid file name."
    if file.size > max_size:
        return f"File is too large. Maximum size is {max_size // (1024 * 1024)}MB."
    if file.content_type not in allowed_types:
        return f"Unsupported file type: {file.content_type or 'unknown'}."
    return None


def _rejected(file: UploadFileData, reason: str) -> UploadResult:
    logger.warning("Rejected upload %s: %s", file.name, reason)
    return UploadResult(
        name=file.name,
        status=UploadStatus.REJECTED,
        error=ErrorKind.VALIDATION_ERROR,
        reason=reason,
    )


def validate_files(
    files: Iterable[UploadFileData],
    max_size: int | None = None,
    allowed_types: Iterable[str] | None = None,
) -> tuple[list[UploadFileData], list[UploadResult]]:
    """
    Split files into accepted ones and rejection results.

    A file is accepted iff its size is within the limit and its declared
    media type is in the allow-list.
    """
    accepted: list[UploadFileData] = []
    rejected: list[UploadResult] = []
    for file in files:
        reason = rejection_reason(file, max_size, allowed_types)
        if reason is None:
            accepted.append(file)
        else:
            rejected.append(_rejected(file, reason))
    return accepted, rejected


class UploadWorkflow:
    """Uploads files to object storage and registers their metadata."""

    def __init__(
        self,
        storage: StorageService | None = None,
        retry_policy: RetryPolicy | None = None,
        max_size: int | None = None,
        allowed_types: Iterable[str] | None = None,
    ):
        self.storage = storage or storage_service
        self.retry_policy = retry_policy or RetryPolicy.for_uploads(settings)
        self.max_size = max_size
        self.allowed_types = allowed_types

    async def upload_files(
        self,
        db: AsyncSession,
        files: list[UploadFileData],
        folder_id: UUID,
        user_id: UUID,
    ) -> list[UploadResult]:
        """
        Validate and upload a batch of files, one at a time.

        Every input file gets a result, in input order. A failing file does
        not stop the batch.
        """
        accepted, rejected = validate_files(files, self.max_size, self.allowed_types)
        accepted_ids = {id(file) for file in accepted}
        # Rejections come back in input order
        rejections = iter(rejected)

        results: list[UploadResult] = []
        for file in files:
            if id(file) not in accepted_ids:
                results.append(next(rejections))
                continue
            try:
                document = await retry(
                    lambda file=file: self._upload_one(db, file, folder_id, user_id),
                    self.retry_policy,
                    description=f"Upload of {file.name}",
                )
            except StudyHubError as e:
                logger.error("Upload failed for %s: %s", file.name, e.message, exc_info=True)
                results.append(
                    UploadResult(
                        name=file.name,
                        status=UploadStatus.FAILED,
                        error=e.kind,
                        reason=e.user_message,
                    )
                )
                continue
            logger.info("Uploaded %s (%d bytes) to %s", file.name, file.size, document.path)
            results.append(UploadResult(name=file.name, status=UploadStatus.UPLOADED, document=document))
        return results

    async def _upload_one(
        self,
        db: AsyncSession,
        file: UploadFileData,
        folder_id: UUID,
        user_id: UUID,
    ) -> Document:
        """Upload bytes, resolve the public URL and upsert the metadata row as one unit."""
        path = document_path(user_id, folder_id, file.name)
        await self.storage.upload(path, file.data, file.content_type)
        url = self.storage.public_url(path)

        try:
            await upsert(
                db,
                Document,
                values={
                    "user_id": user_id,
                    "folder_id": folder_id,
                    "name": file.name,
                    "size": file.size,
                    "url": url,
                    "path": path,
                    "content_type": file.content_type,
                },
                conflict_columns=["path"],
                update_columns=["name", "size", "url", "content_type"],
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to record document {path}: {e}", context={"path": path}) from e

        result = await db.execute(
            select(Document)
            .where(Document.path == path)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def download_document(self, document: Document) -> bytes:
        """Fetch a document's bytes from storage."""
        return await self.storage.download(document.path)

    async def delete_document(self, db: AsyncSession, document: Document) -> None:
        """
        Delete a document.

        The metadata row goes first; it is the source of truth. If removing the
        stored object then fails, the object is orphaned and logged, and the
        delete still succeeds.
        """
        path, document_id = document.path, document.id
        try:
            await db.delete(document)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(f"Failed to delete document row {document_id}: {e}") from e

        try:
            await self.storage.remove(path)
        except StudyHubError:
            logger.error("Document row deleted but storage object %s is orphaned", path, exc_info=True)


# Singleton instance
upload_workflow = UploadWorkflow()
