"""Pydantic schemas for API request/response validation and generated content."""

from studyhub.schemas.user import UserRead
from studyhub.schemas.auth import GoogleAuthRequest, TokenResponse
from studyhub.schemas.documents import DocumentRead, UploadBatchResponse, UploadResultRead, UploadStatus
from studyhub.schemas.folders import FolderCreate, FolderRead, FolderWithDocuments
from studyhub.schemas.study_plans import (
    Chapter,
    GenerationPhase,
    GenerationStatus,
    Lesson,
    SourceDocument,
    StudyPlan,
    lesson_slug,
)
from studyhub.schemas.lessons import AnswerAnalysis, LessonContent, LessonExample, LessonExercise
from studyhub.schemas.progress import ProgressResponse, ProgressSummary, ToggleCompleteRequest

__all__ = [
    # User
    "UserRead",
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    # Folders & documents
    "FolderCreate",
    "FolderRead",
    "FolderWithDocuments",
    "DocumentRead",
    "UploadBatchResponse",
    "UploadResultRead",
    "UploadStatus",
    # Study plans
    "Chapter",
    "GenerationPhase",
    "GenerationStatus",
    "Lesson",
    "SourceDocument",
    "StudyPlan",
    "lesson_slug",
    # Lessons
    "AnswerAnalysis",
    "LessonContent",
    "LessonExample",
    "LessonExercise",
    # Progress
    "ProgressResponse",
    "ProgressSummary",
    "ToggleCompleteRequest",
]
