"""Progress schemas."""

from pydantic import BaseModel, Field


class ToggleCompleteRequest(BaseModel):
    """Identify a lesson by its chapter and lesson titles."""

    chapter_title: str = Field(..., min_length=1)
    lesson_title: str = Field(..., min_length=1)


class LessonProgressRead(BaseModel):
    """Completion state for one lesson."""

    chapter_title: str
    lesson_title: str
    lesson_id: str
    completed: bool


class ProgressSummary(BaseModel):
    """Completed lessons over the study plan's lessons."""

    completed: int
    total: int
    percent: int


class ProgressResponse(BaseModel):
    """All progress entries for a folder."""

    lessons: list[LessonProgressRead]
    summary: ProgressSummary | None = None
