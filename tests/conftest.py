"""Pytest configuration and fixtures."""

import os

# Required settings must exist before studyhub modules are imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test-secret")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("ENVIRONMENT", "development")

from collections.abc import AsyncGenerator

import pytest
from cachetools import TTLCache
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studyhub.api.deps import get_current_user
from studyhub.config import get_settings
from studyhub.db.base import Base
from studyhub.db.models import Folder, User
from studyhub.db.session import get_db
from studyhub.main import app
from studyhub.services import (
    lesson_service,
    study_plan_service,
    tutor_chat_service,
    upload_workflow,
)
from studyhub.services.lessons import LessonService
from studyhub.services.plan_cache import StudyPlanCache
from studyhub.services.retry import RetryPolicy
from studyhub.services.study_plans import StudyPlanService
from studyhub.services.text_extractor import TextExtractor
from studyhub.services.uploads import UploadWorkflow

from tests.fakes import FakeGenerationClient, FakeStorage, RecordingSleep

settings = get_settings()


@pytest.fixture
async def engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(db_session) -> User:
    user = User(email="student@example.com", name="Student")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session) -> User:
    user = User(email="other@example.com", name="Other")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def folder(db_session, user) -> Folder:
    folder = Folder(user_id=user.id, name="Physics")
    db_session.add(folder)
    await db_session.commit()
    return folder


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def generator() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def upload_policy(sleeper) -> RetryPolicy:
    return RetryPolicy.for_uploads(settings, sleep=sleeper)


@pytest.fixture
def generation_policy(sleeper) -> RetryPolicy:
    return RetryPolicy.for_generation(settings, sleep=sleeper)


@pytest.fixture
def uploads(storage, upload_policy) -> UploadWorkflow:
    return UploadWorkflow(storage=storage, retry_policy=upload_policy)


@pytest.fixture
def plan_service(storage, generator, generation_policy) -> StudyPlanService:
    return StudyPlanService(
        cache=StudyPlanCache(max_entries=16, ttl_seconds=3600),
        storage=storage,
        generator=generator,
        extractor=TextExtractor(),
        retry_policy=generation_policy,
        timeout_seconds=1.0,
    )


@pytest.fixture
def lessons(plan_service, generator, generation_policy) -> LessonService:
    return LessonService(
        study_plans=plan_service,
        generator=generator,
        retry_policy=generation_policy,
    )


@pytest.fixture
async def client(
    monkeypatch,
    db_session,
    user,
    storage,
    generator,
    upload_policy,
    generation_policy,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client authenticated as `user`, with fakes behind the services."""

    async def _get_db():
        yield db_session

    async def _get_current_user():
        return user

    monkeypatch.setattr(upload_workflow, "storage", storage)
    monkeypatch.setattr(upload_workflow, "retry_policy", upload_policy)
    monkeypatch.setattr(study_plan_service, "storage", storage)
    monkeypatch.setattr(study_plan_service, "generator", generator)
    monkeypatch.setattr(study_plan_service, "retry_policy", generation_policy)
    monkeypatch.setattr(study_plan_service, "cache", StudyPlanCache())
    monkeypatch.setattr(study_plan_service, "_in_flight", {})
    monkeypatch.setattr(study_plan_service, "_status", TTLCache(maxsize=64, ttl=3600))
    monkeypatch.setattr(lesson_service, "generator", generator)
    monkeypatch.setattr(lesson_service, "retry_policy", generation_policy)
    monkeypatch.setattr(tutor_chat_service, "generator", generator)
    monkeypatch.setattr(tutor_chat_service, "retry_policy", generation_policy)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = _get_current_user
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
