"""Lesson content generation and answer grading."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import LessonContentRecord
from studyhub.db.upsert import upsert
from studyhub.errors import FetchError, NotFoundError, StorageError, ValidationFailure
from studyhub.schemas.lessons import AnswerAnalysis, LessonContent
from studyhub.schemas.study_plans import Chapter, Lesson
from studyhub.services.generation import GenerationClient, generation_client
from studyhub.services.retry import RetryPolicy, retry
from studyhub.services.study_plans import StudyPlanService, study_plan_service

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class LessonPage:
    """Lesson content together with where the lesson sits in the plan."""

    chapter: Chapter
    lesson: Lesson
    content: LessonContent


class LessonService:
    """Serves stored lesson content, generating it on first request."""

    def __init__(
        self,
        study_plans: StudyPlanService | None = None,
        generator: GenerationClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.study_plans = study_plans or study_plan_service
        self.generator = generator or generation_client
        self.retry_policy = retry_policy or RetryPolicy.for_generation(settings)

    async def get_lesson_page(
        self,
        db: AsyncSession,
        folder_id: UUID,
        lesson_slug: str,
        user_id: UUID,
    ) -> LessonPage:
        """
        Locate a lesson by slug and return its content.

        Stored content is reused; otherwise it is generated, stored and
        returned.

        Raises:
            NotFoundError: If the folder has no plan or no lesson matches the slug
            FetchError: If reading stored content fails
            GenerationError: If generation fails after retries
            StorageError: If storing generated content fails
        """
        plan = await self.study_plans.fetch_study_plan(db, folder_id, user_id)
        if plan is None:
            raise NotFoundError(
                f"No study plan for folder {folder_id}",
                context={"folder_id": str(folder_id)},
            )
        found = plan.find_lesson(lesson_slug)
        if found is None:
            raise NotFoundError(
                f"Lesson {lesson_slug!r} not found in study plan for folder {folder_id}",
                context={"lesson_id": lesson_slug},
            )
        chapter, lesson = found

        stored = await self._load_stored(db, folder_id, lesson_slug, user_id)
        if stored is not None:
            return LessonPage(chapter=chapter, lesson=lesson, content=stored)

        content = await retry(
            lambda: self.generator.generate_lesson_content(
                lesson.title, lesson.description, lesson.key_points
            ),
            self.retry_policy,
            description=f"Lesson content generation for {lesson_slug!r}",
        )

        try:
            await upsert(
                db,
                LessonContentRecord,
                values={
                    "folder_id": folder_id,
                    "lesson_id": lesson_slug,
                    "user_id": user_id,
                    "content": content.to_json(),
                    "created_at": datetime.now(timezone.utc),
                },
                conflict_columns=["folder_id", "lesson_id", "user_id"],
                update_columns=["content", "created_at"],
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(
                f"Failed to store lesson content {lesson_slug!r}: {e}",
                context={"lesson_id": lesson_slug},
            ) from e

        logger.info("Generated lesson content %r for folder %s", lesson_slug, folder_id)
        return LessonPage(chapter=chapter, lesson=lesson, content=content)

    async def get_lesson_content(
        self,
        db: AsyncSession,
        folder_id: UUID,
        lesson_slug: str,
        user_id: UUID,
    ) -> LessonContent:
        page = await self.get_lesson_page(db, folder_id, lesson_slug, user_id)
        return page.content

    async def _load_stored(
        self,
        db: AsyncSession,
        folder_id: UUID,
        lesson_slug: str,
        user_id: UUID,
    ) -> LessonContent | None:
        try:
            result = await db.execute(
                select(LessonContentRecord).where(
                    LessonContentRecord.folder_id == folder_id,
                    LessonContentRecord.lesson_id == lesson_slug,
                    LessonContentRecord.user_id == user_id,
                )
            )
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise FetchError(
                f"Failed to read lesson content {lesson_slug!r}: {e}",
                context={"lesson_id": lesson_slug},
            ) from e

        if record is None:
            return None
        try:
            return LessonContent.model_validate_json(record.content)
        except ValidationError:
            logger.warning("Stored lesson content %r is unreadable, regenerating", lesson_slug, exc_info=True)
            return None

    async def analyze_answer(
        self,
        question: str,
        answer: str,
        lesson_context: str,
    ) -> AnswerAnalysis:
        """
        Grade a free-text answer.

        Raises:
            ValidationFailure: If the question or answer is blank
            GenerationError: If grading fails after retries
        """
        if not question.strip() or not answer.strip():
            raise ValidationFailure("Both a question and an answer are required.")

        return await retry(
            lambda: self.generator.analyze_answer(question, answer, lesson_context),
            self.retry_policy,
            description="Answer analysis",
        )


# Singleton instance
lesson_service = LessonService()
