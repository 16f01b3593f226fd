"""Study plan fetching and generation for a folder's documents."""

import asyncio
import logging
from datetime import datetime, timezone
from uuid import UUID

from cachetools import TTLCache
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.config import get_settings
from studyhub.db.models import Document, StudyPlanRecord
from studyhub.db.upsert import upsert
from studyhub.errors import (
    FetchError,
    GenerationError,
    GenerationTimeout,
    StorageError,
    StudyHubError,
    ValidationFailure,
)
from studyhub.schemas.study_plans import (
    GenerationPhase,
    GenerationStatus,
    SourceDocument,
    StudyPlan,
)
from studyhub.services.generation import GenerationClient, generation_client, parse_generated
from studyhub.services.plan_cache import CacheKey, StudyPlanCache
from studyhub.services.retry import RetryPolicy, retry
from studyhub.services.storage import StorageService, storage_service
from studyhub.services.text_extractor import TextExtractor, text_extractor

logger = logging.getLogger(__name__)
settings = get_settings()

_TRUNCATED = "\n\n[... content truncated ...]"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def apply_context_budget(documents: list[SourceDocument], max_chars: int) -> list[SourceDocument]:
    """
    Trim document texts so their combined length stays within `max_chars`.

    Documents are kept in order. The one that crosses the budget is cut and
    marked; any after it are dropped.
    """
    budgeted: list[SourceDocument] = []
    remaining = max_chars
    for doc in documents:
        if remaining <= 0:
            logger.warning("Dropping %s from generation context: budget exhausted", doc.name)
            continue
        if len(doc.content) > remaining:
            logger.warning("Truncating %s to %d chars for generation context", doc.name, remaining)
            budgeted.append(SourceDocument(name=doc.name, content=doc.content[:remaining] + _TRUNCATED))
            remaining = 0
            continue
        budgeted.append(doc)
        remaining -= len(doc.content)
    return budgeted


class StudyPlanService:
    """
    Reads and generates study plans.

    One cache instance is shared by the read and generate paths. Concurrent
    generations for the same (folder, user) share a single task; the first
    caller's request does the work.
    """

    def __init__(
        self,
        cache: StudyPlanCache | None = None,
        storage: StorageService | None = None,
        generator: GenerationClient | None = None,
        extractor: TextExtractor | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float | None = None,
        status_entries: TTLCache | None = None,
    ):
        self.cache = cache or StudyPlanCache(
            max_entries=settings.plan_cache_max_entries,
            ttl_seconds=settings.plan_cache_ttl_seconds,
        )
        self.storage = storage or storage_service
        self.generator = generator or generation_client
        self.extractor = extractor or text_extractor
        self.retry_policy = retry_policy or RetryPolicy.for_generation(settings)
        self.timeout_seconds = (
            settings.generation_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._in_flight: dict[CacheKey, asyncio.Task] = {}
        # Last known status per (folder, user); idle entries expire
        self._status: TTLCache = status_entries if status_entries is not None else TTLCache(
            maxsize=settings.generation_status_max_entries,
            ttl=settings.generation_status_ttl_seconds,
        )

    async def fetch_study_plan(
        self,
        db: AsyncSession,
        folder_id: UUID,
        user_id: UUID,
    ) -> StudyPlan | None:
        """
        Return the stored plan for a folder, or None if there is none.

        Cached plans are returned without touching the database. A stored
        plan that no longer parses is treated as absent.

        Raises:
            FetchError: If the database read fails
        """
        cached = self.cache.get(folder_id, user_id)
        if cached is not None:
            return cached

        try:
            result = await db.execute(
                select(StudyPlanRecord).where(
                    StudyPlanRecord.folder_id == folder_id,
                    StudyPlanRecord.user_id == user_id,
                )
            )
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise FetchError(
                f"Failed to read study plan for folder {folder_id}: {e}",
                context={"folder_id": str(folder_id)},
            ) from e

        if record is None:
            self.cache.invalidate(folder_id, user_id)
            return None

        try:
            plan = StudyPlan.model_validate_json(record.content)
        except ValidationError:
            logger.error("Stored study plan for folder %s is unreadable", folder_id, exc_info=True)
            self.cache.invalidate(folder_id, user_id)
            return None

        self.cache.put(folder_id, user_id, plan)
        return plan

    def clear(self, folder_id: UUID, user_id: UUID) -> None:
        """Drop the cached plan for a folder."""
        self.cache.invalidate(folder_id, user_id)

    def get_status(self, folder_id: UUID, user_id: UUID) -> GenerationStatus:
        return self._status.get((folder_id, user_id)) or GenerationStatus()

    async def generate_study_plan(
        self,
        db: AsyncSession,
        documents: list[Document],
        user_id: UUID,
        folder_id: UUID,
    ) -> StudyPlan:
        """
        Generate, store and cache a study plan from a folder's documents.

        Calls made while a generation for the same (folder, user) is running
        await that generation and receive its result or error.

        Raises:
            ValidationFailure: If `documents` is empty
            GenerationTimeout: If the final attempt timed out
            GenerationError: If every attempt failed for another reason
        """
        if not documents:
            raise ValidationFailure("Upload at least one document before generating a study plan.")

        key = (folder_id, user_id)
        task = self._in_flight.get(key)
        if task is None:
            # Rows are expired on rollback, so retries work from a snapshot
            refs = [(doc.name, doc.path, doc.content_type) for doc in documents]
            task = asyncio.create_task(self._run(db, refs, user_id, folder_id))
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))
        else:
            logger.info("Joining in-flight study plan generation for folder %s", folder_id)
        return await asyncio.shield(task)

    def _forget(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _run(
        self,
        db: AsyncSession,
        documents: list[tuple[str, str, str | None]],
        user_id: UUID,
        folder_id: UUID,
    ) -> StudyPlan:
        key = (folder_id, user_id)
        status = GenerationStatus(phase=GenerationPhase.FETCHING, started_at=_now())
        self._status[key] = status

        async def attempt() -> StudyPlan:
            status.attempt += 1
            try:
                return await self._attempt(db, documents, user_id, folder_id, status)
            except StudyHubError as e:
                status.last_error = e.kind
                raise

        try:
            plan = await retry(
                attempt,
                self.retry_policy,
                description=f"Study plan generation for folder {folder_id}",
            )
        except GenerationTimeout:
            logger.error("Study plan generation for folder %s timed out", folder_id)
            raise
        except StudyHubError as e:
            logger.error("Study plan generation for folder %s failed: %s", folder_id, e.message)
            error = GenerationError(
                f"Study plan generation failed after {status.attempt} attempt(s): {e.message}",
                context={"folder_id": str(folder_id), "cause": e.kind.value, **e.context},
            )
            status.last_error = error.kind
            raise error from e
        finally:
            status.phase = GenerationPhase.IDLE
            status.finished_at = _now()
            # Restart the expiry from the end of the run
            self._status[key] = status

        status.last_error = None
        logger.info(
            "Generated study plan for folder %s: %d chapters, %d lessons",
            folder_id, len(plan.chapters), plan.lesson_count(),
        )
        return plan

    async def _attempt(
        self,
        db: AsyncSession,
        documents: list[tuple[str, str, str | None]],
        user_id: UUID,
        folder_id: UUID,
        status: GenerationStatus,
    ) -> StudyPlan:
        """One full fetch, generate, validate and store pass."""
        status.phase = GenerationPhase.FETCHING
        sources = []
        for name, path, content_type in documents:
            data = await self.storage.download(path)
            content = self.extractor.extract_text(name, data, content_type)
            sources.append(SourceDocument(name=name, content=content))
        sources = apply_context_budget(sources, settings.max_document_context_chars)

        status.phase = GenerationPhase.GENERATING
        try:
            text = await asyncio.wait_for(
                self.generator.request_study_plan(sources),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationTimeout(
                f"Study plan generation timed out after {self.timeout_seconds}s",
                context={"timeout_seconds": self.timeout_seconds},
            ) from e

        status.phase = GenerationPhase.PROCESSING
        plan = parse_generated(text, StudyPlan, envelope="studyPlan")

        status.phase = GenerationPhase.STORING
        try:
            await upsert(
                db,
                StudyPlanRecord,
                values={
                    "folder_id": folder_id,
                    "user_id": user_id,
                    "content": plan.to_json(),
                    "created_at": _now(),
                },
                conflict_columns=["folder_id", "user_id"],
                update_columns=["content", "created_at"],
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError(
                f"Failed to store study plan for folder {folder_id}: {e}",
                context={"folder_id": str(folder_id)},
            ) from e

        self.cache.put(folder_id, user_id, plan)
        return plan


# Singleton instance
study_plan_service = StudyPlanService()
