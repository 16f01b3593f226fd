"""Lesson completion routes."""

from uuid import UUID

from fastapi import APIRouter

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Folder
from studyhub.schemas.progress import (
    LessonProgressRead,
    ProgressResponse,
    ToggleCompleteRequest,
)
from studyhub.services import study_plan_service
from studyhub.services.progress import LessonKey, ProgressTracker

router = APIRouter(prefix="/folders/{folder_id}/progress", tags=["progress"])


def _lesson_read(key: LessonKey, completed: bool) -> LessonProgressRead:
    return LessonProgressRead(
        chapter_title=key.chapter_title,
        lesson_title=key.lesson_title,
        lesson_id=key.lesson_id,
        completed=completed,
    )


@router.get("", response_model=ProgressResponse)
async def get_progress(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> ProgressResponse:
    """Completion state for every tracked lesson, with a summary over the study plan."""
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    tracker = await ProgressTracker.load(db, current_user.id, folder_id)
    plan = await study_plan_service.fetch_study_plan(db, folder_id, current_user.id)
    return ProgressResponse(
        lessons=[_lesson_read(key, completed) for key, completed in tracker.state.items()],
        summary=tracker.summary(plan) if plan else None,
    )


@router.post("/toggle", response_model=LessonProgressRead)
async def toggle_lesson_complete(
    folder_id: UUID,
    data: ToggleCompleteRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> LessonProgressRead:
    """Flip a lesson between complete and incomplete."""
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    tracker = await ProgressTracker.load(db, current_user.id, folder_id)
    completed = await tracker.toggle_complete(data.chapter_title, data.lesson_title)
    return _lesson_read(tracker.last_command.key, completed)
