"""Per-lesson completion tracking with optimistic toggles."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.db.models import UserProgress
from studyhub.db.upsert import upsert
from studyhub.errors import FetchError, StorageError, ValidationFailure
from studyhub.schemas.progress import ProgressSummary
from studyhub.schemas.study_plans import StudyPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LessonKey:
    """Identifies a lesson by its position in a folder's plan."""

    folder_id: UUID
    chapter_title: str
    lesson_title: str

    @property
    def lesson_id(self) -> str:
        """Readable "{chapter}-{lesson}" identifier. Not unique on its own."""
        return f"{self.chapter_title}-{self.lesson_title}"


@dataclass
class ToggleCompletion:
    """A reversible flip of one lesson's completion flag."""

    key: LessonKey
    previous: bool

    @property
    def value(self) -> bool:
        return not self.previous

    def apply(self, state: dict[LessonKey, bool]) -> None:
        state[self.key] = self.value

    def revert(self, state: dict[LessonKey, bool]) -> None:
        state[self.key] = self.previous


class ProgressTracker:
    """
    Completion state for one user's folder.

    Toggles update local state first and persist second; a failed write
    reverts the local change.
    """

    def __init__(self, db: AsyncSession, user_id: UUID, folder_id: UUID):
        self.db = db
        self.user_id = user_id
        self.folder_id = folder_id
        self.state: dict[LessonKey, bool] = {}
        self.last_command: ToggleCompletion | None = None

    @classmethod
    async def load(cls, db: AsyncSession, user_id: UUID, folder_id: UUID) -> "ProgressTracker":
        """
        Read every progress row for the folder.

        Raises:
            FetchError: If the database read fails
        """
        tracker = cls(db, user_id, folder_id)
        try:
            result = await db.execute(
                select(UserProgress).where(
                    UserProgress.user_id == user_id,
                    UserProgress.folder_id == folder_id,
                )
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise FetchError(
                f"Failed to read progress for folder {folder_id}: {e}",
                context={"folder_id": str(folder_id)},
            ) from e

        for row in rows:
            tracker.state[LessonKey(folder_id, row.chapter_title, row.lesson_title)] = row.completed
        return tracker

    def is_complete(self, chapter_title: str, lesson_title: str) -> bool:
        return self.state.get(LessonKey(self.folder_id, chapter_title, lesson_title), False)

    async def toggle_complete(self, chapter_title: str, lesson_title: str) -> bool:
        """
        Flip a lesson's completion flag and persist it.

        Returns:
            The new value

        Raises:
            ValidationFailure: If either title is blank
            StorageError: If the write fails; local state is restored
        """
        if not chapter_title.strip() or not lesson_title.strip():
            raise ValidationFailure("Chapter and lesson titles are required.")

        key = LessonKey(self.folder_id, chapter_title, lesson_title)
        command = ToggleCompletion(key=key, previous=self.state.get(key, False))
        command.apply(self.state)
        self.last_command = command

        try:
            await upsert(
                self.db,
                UserProgress,
                values={
                    "user_id": self.user_id,
                    "folder_id": self.folder_id,
                    "chapter_title": chapter_title,
                    "lesson_title": lesson_title,
                    "lesson_id": key.lesson_id,
                    "completed": command.value,
                    "updated_at": datetime.now(timezone.utc),
                },
                conflict_columns=["user_id", "folder_id", "chapter_title", "lesson_title"],
                update_columns=["completed", "updated_at"],
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            command.revert(self.state)
            logger.error("Failed to save progress for %r, reverted", key.lesson_id, exc_info=True)
            raise StorageError(
                f"Failed to save progress for {key.lesson_id!r}: {e}",
                context={"chapter_title": chapter_title, "lesson_title": lesson_title},
            ) from e

        logger.info("Lesson %r in folder %s marked %s", key.lesson_id, self.folder_id,
                    "complete" if command.value else "incomplete")
        return command.value

    def summary(self, plan: StudyPlan) -> ProgressSummary:
        """Completed lessons over all lessons in `plan`, as a rounded percentage."""
        total = 0
        completed = 0
        for chapter in plan.chapters:
            for lesson in chapter.lessons:
                total += 1
                if self.is_complete(chapter.title, lesson.title):
                    completed += 1
        percent = round(completed * 100 / total) if total else 0
        return ProgressSummary(completed=completed, total=total, percent=percent)
