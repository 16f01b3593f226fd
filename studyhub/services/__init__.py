"""Services for storage, generation and the study workflows."""

from studyhub.services.storage import storage_service
from studyhub.services.text_extractor import text_extractor
from studyhub.services.generation import generation_client
from studyhub.services.uploads import upload_workflow
from studyhub.services.study_plans import study_plan_service
from studyhub.services.lessons import lesson_service
from studyhub.services.tutor_chat import tutor_chat_service

__all__ = [
    "storage_service",
    "text_extractor",
    "generation_client",
    "upload_workflow",
    "study_plan_service",
    "lesson_service",
    "tutor_chat_service",
]
