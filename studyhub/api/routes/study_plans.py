"""Study plan routes: read, generate and generation status."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter
from sqlalchemy import select

from studyhub.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studyhub.db.models import Document, Folder
from studyhub.schemas.study_plans import GenerationStatusResponse, StudyPlanResponse
from studyhub.services import study_plan_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/folders/{folder_id}/study-plan", tags=["study-plans"])


@router.get("", response_model=StudyPlanResponse)
async def get_study_plan(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    refresh: bool = False,
) -> StudyPlanResponse:
    """
    Get the folder's study plan; `study_plan` is null if none has been generated.

    With `refresh=true` the cached copy is dropped and the plan is re-read
    from the database.
    """
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    if refresh:
        study_plan_service.clear(folder_id, current_user.id)
    plan = await study_plan_service.fetch_study_plan(db, folder_id, current_user.id)
    return StudyPlanResponse(
        folder_id=folder_id,
        study_plan=plan.to_wire() if plan else None,
    )


@router.post("/generate", response_model=StudyPlanResponse)
async def generate_study_plan(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> StudyPlanResponse:
    """
    Generate (or regenerate) the study plan from every document in the folder.

    Regeneration replaces the plan; progress and lesson content are kept.
    A request made while a generation is running joins it.
    """
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    result = await db.execute(
        select(Document)
        .where(Document.folder_id == folder_id, Document.user_id == current_user.id)
        .order_by(Document.created_at, Document.name)
    )
    documents = list(result.scalars())

    plan = await study_plan_service.generate_study_plan(db, documents, current_user.id, folder_id)
    return StudyPlanResponse(folder_id=folder_id, study_plan=plan.to_wire())


@router.get("/status", response_model=GenerationStatusResponse)
async def get_generation_status(
    folder_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> GenerationStatusResponse:
    """Current phase and attempt of the folder's study plan generation."""
    await get_user_resource_or_404(db, Folder, folder_id, current_user.id)
    state = study_plan_service.get_status(folder_id, current_user.id)

    elapsed_ms = None
    if state.started_at:
        end = state.finished_at or datetime.now(timezone.utc)
        elapsed_ms = int((end - state.started_at).total_seconds() * 1000)

    return GenerationStatusResponse(
        phase=state.phase,
        attempt=state.attempt,
        last_error=state.last_error,
        started_at=state.started_at,
        finished_at=state.finished_at,
        elapsed_ms=elapsed_ms,
    )
