"""Lesson content and answer grading routes."""

from uuid import UUID

from fastapi import APIRouter

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Folder
from studyhub.schemas.lessons import (
    AnswerAnalysisRequest,
    AnswerAnalysisResponse,
    LessonContentResponse,
)
from studyhub.services import lesson_service

router = APIRouter(prefix="/folders/{folder_id}/lessons", tags=["lessons"])


@router.get("/{lesson_slug}", response_model=LessonContentResponse)
async def get_lesson(
    folder_id: UUID,
    lesson_slug: str,
    current_user: CurrentUser,
    db: DbSession,
) -> LessonContentResponse:
    """Get a lesson's content, generating it on first request."""
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    page = await lesson_service.get_lesson_page(db, folder_id, lesson_slug, current_user.id)
    return LessonContentResponse(
        folder_id=folder_id,
        lesson_id=lesson_slug,
        chapter_title=page.chapter.title,
        lesson_content=page.content.to_wire(),
    )


@router.post("/{lesson_slug}/analyze", response_model=AnswerAnalysisResponse)
async def analyze_answer(
    folder_id: UUID,
    lesson_slug: str,
    data: AnswerAnalysisRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> AnswerAnalysisResponse:
    """
    Grade an answer to one of the lesson's exercises.

    The lesson's content is the grading context unless the request
    supplies its own.
    """
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    lesson_context = data.lesson_context
    if not lesson_context:
        content = await lesson_service.get_lesson_content(db, folder_id, lesson_slug, current_user.id)
        lesson_context = content.content

    analysis = await lesson_service.analyze_answer(data.question, data.answer, lesson_context)
    return AnswerAnalysisResponse(analysis=analysis.to_wire())
