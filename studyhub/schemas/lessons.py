"""Lesson content and answer analysis schemas."""

from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr

from studyhub.schemas.base import GeneratedSchema


class LessonExample(GeneratedSchema):
    """Worked example within a lesson."""

    title: StrictStr
    code: StrictStr | None = None
    explanation: StrictStr


class LessonExercise(GeneratedSchema):
    """Practice question within a lesson."""

    question: StrictStr = Field(..., min_length=1)
    hint: StrictStr | None = None


class LessonContent(GeneratedSchema):
    """Generated teaching content for one lesson."""

    title: StrictStr = Field(..., min_length=1)
    content: StrictStr = Field(..., min_length=1)
    objectives: list[StrictStr]
    examples: list[LessonExample]
    exercises: list[LessonExercise]
    summary: StrictStr = Field(..., min_length=1)


class AnswerAnalysis(GeneratedSchema):
    """Grading result for a free-text answer. Never persisted."""

    is_correct: StrictBool = Field(..., alias="isCorrect")
    score: Annotated[StrictInt, Field(ge=0, le=100)]
    feedback: StrictStr
    suggestions: list[StrictStr]
    concepts_to_review: list[StrictStr] = Field(..., alias="conceptsToReview")


# Request / response schemas
class AnswerAnalysisRequest(BaseModel):
    """Answer submitted for grading."""

    question: str = Field(..., min_length=1, max_length=5000)
    answer: str = Field(..., min_length=1, max_length=20000)
    lesson_context: str | None = Field(
        None, description="Overrides the stored lesson content as grading context"
    )


class LessonContentResponse(BaseModel):
    """Lesson content with its position in the study plan."""

    folder_id: UUID
    lesson_id: str
    chapter_title: str
    lesson_content: dict


class AnswerAnalysisResponse(BaseModel):
    """Wire envelope for an analysis."""

    analysis: dict
