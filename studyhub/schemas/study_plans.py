"""Study plan schemas."""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, StrictStr

from studyhub.errors import ErrorKind
from studyhub.schemas.base import GeneratedSchema

_WHITESPACE = re.compile(r"\s+")


def lesson_slug(title: str) -> str:
    """
    Derive the URL slug for a lesson title: lowercase, whitespace runs to '-'.

    Lossy: "Intro  Atoms" and "intro atoms" share a slug.
    """
    return _WHITESPACE.sub("-", title.lower())


class Lesson(GeneratedSchema):
    """A single lesson inside a chapter."""

    title: StrictStr = Field(..., min_length=1)
    description: StrictStr
    key_points: list[StrictStr] = Field(..., alias="keyPoints")
    estimated_duration: StrictStr = Field(..., alias="estimatedDuration")

    @property
    def slug(self) -> str:
        return lesson_slug(self.title)


class Chapter(GeneratedSchema):
    """An ordered group of lessons."""

    title: StrictStr = Field(..., min_length=1)
    description: StrictStr
    lessons: list[Lesson]


class StudyPlan(GeneratedSchema):
    """Hierarchical curriculum generated from a folder's documents."""

    chapters: list[Chapter] = Field(..., min_length=1)

    def find_lesson(self, slug: str) -> tuple[Chapter, Lesson] | None:
        """Return the first (chapter, lesson) in plan order whose slug matches."""
        for chapter in self.chapters:
            for lesson in chapter.lessons:
                if lesson.slug == slug:
                    return chapter, lesson
        return None

    def lesson_count(self) -> int:
        return sum(len(chapter.lessons) for chapter in self.chapters)


class SourceDocument(BaseModel):
    """Document text sent to the generation service."""

    name: str
    content: str


class GenerationPhase(str, Enum):
    """Phases of a study plan generation run."""

    IDLE = "idle"
    FETCHING = "fetching"
    GENERATING = "generating"
    PROCESSING = "processing"
    STORING = "storing"


@dataclass
class GenerationStatus:
    """Live status of generation for one (folder, user)."""

    phase: GenerationPhase = GenerationPhase.IDLE
    attempt: int = 0
    last_error: ErrorKind | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


# Response schemas
class StudyPlanResponse(BaseModel):
    """Study plan for a folder, or null when none has been generated."""

    folder_id: UUID
    study_plan: dict | None


class GenerationStatusResponse(BaseModel):
    """Current generation status for a folder."""

    phase: GenerationPhase
    attempt: int
    last_error: ErrorKind | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    elapsed_ms: int | None = None
