"""API routes package."""

from studyhub.api.routes import (
    auth,
    chat,
    documents,
    folders,
    lessons,
    progress,
    study_plans,
)

__all__ = [
    "auth",
    "chat",
    "documents",
    "folders",
    "lessons",
    "progress",
    "study_plans",
]
