"""Folder routes."""

import logging
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from studyhub.api.deps import CurrentUser, DbSession
from studyhub.db.models import Folder
from studyhub.errors import CreateError, FetchError, NotFoundError, ValidationFailure
from studyhub.schemas.folders import FolderCreate, FolderRead, FolderWithDocuments

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("", response_model=list[FolderRead])
async def list_folders(
    current_user: CurrentUser,
    db: DbSession,
) -> list[FolderRead]:
    """List the current user's folders, newest first."""
    try:
        result = await db.execute(
            select(Folder)
            .where(Folder.user_id == current_user.id)
            .order_by(Folder.created_at.desc(), Folder.name)
        )
    except SQLAlchemyError as e:
        raise FetchError(f"Failed to list folders: {e}") from e
    return [FolderRead.model_validate(f) for f in result.scalars()]


@router.post("", response_model=FolderRead, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> FolderRead:
    """Create a folder."""
    if not data.name:
        raise ValidationFailure("Folder name is required.")

    folder = Folder(user_id=current_user.id, name=data.name)
    db.add(folder)
    try:
        await db.commit()
        await db.refresh(folder)
    except SQLAlchemyError as e:
        await db.rollback()
        raise CreateError(f"Failed to create folder {data.name!r}: {e}") from e

    logger.info("Created folder %s for user %s", folder.id, current_user.id)
    return FolderRead.model_validate(folder)


@router.get("/{folder_id}", response_model=FolderWithDocuments)
async def get_folder(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> FolderWithDocuments:
    """Get a folder with its documents."""
    result = await db.execute(
        select(Folder)
        .options(selectinload(Folder.documents))
        .where(Folder.id == folder_id, Folder.user_id == current_user.id)
    )
    folder = result.scalar_one_or_none()
    if folder is None:
        raise NotFoundError(f"Folder {folder_id} not found", context={"id": str(folder_id)})
    return FolderWithDocuments.model_validate(folder)
