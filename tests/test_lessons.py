"""Tests for lesson content and answer grading."""

import json

import pytest
from sqlalchemy import select

from studyhub.db.models import LessonContentRecord, StudyPlanRecord
from studyhub.errors import ErrorKind, InvalidGenerationOutput, NotFoundError, ValidationFailure

from tests.fakes import LESSON_CONTENT, PHYSICS_PLAN


@pytest.fixture
async def stored_plan(db_session, user, folder):
    db_session.add(StudyPlanRecord(folder_id=folder.id, user_id=user.id, content=json.dumps(PHYSICS_PLAN)))
    await db_session.commit()


async def lesson_rows(db):
    return (await db.execute(select(LessonContentRecord))).scalars().all()


async def test_no_study_plan_is_not_found(db_session, user, folder, lessons):
    with pytest.raises(NotFoundError):
        await lessons.get_lesson_content(db_session, folder.id, "kinematics", user.id)


async def test_unknown_slug_is_not_found(db_session, user, folder, lessons, stored_plan, generator):
    with pytest.raises(NotFoundError) as exc_info:
        await lessons.get_lesson_content(db_session, folder.id, "thermodynamics", user.id)
    assert exc_info.value.kind == ErrorKind.NOT_FOUND
    assert generator.calls["lesson"] == []


async def test_generates_then_reuses_stored_content(db_session, user, folder, lessons, stored_plan, generator):
    page = await lessons.get_lesson_page(db_session, folder.id, "kinematics", user.id)

    assert page.chapter.title == "Mechanics"
    assert page.lesson.title == "Kinematics"
    assert page.content.title == "Kinematics"
    assert generator.calls["lesson"] == [
        {"title": "Kinematics", "description": "Describing motion", "key_points": ["Velocity", "Acceleration"]}
    ]
    [row] = await lesson_rows(db_session)
    assert row.lesson_id == "kinematics"
    assert json.loads(row.content) == LESSON_CONTENT

    again = await lessons.get_lesson_content(db_session, folder.id, "kinematics", user.id)

    assert again == page.content
    assert len(generator.calls["lesson"]) == 1


async def test_slug_matches_title_with_spaces(db_session, user, folder, lessons, stored_plan):
    page = await lessons.get_lesson_page(db_session, folder.id, "conservation-of-energy", user.id)
    assert page.chapter.title == "Energy"


async def test_unreadable_stored_content_is_regenerated(db_session, user, folder, lessons, stored_plan, generator):
    db_session.add(LessonContentRecord(folder_id=folder.id, lesson_id="kinematics", user_id=user.id, content="{}"))
    await db_session.commit()

    content = await lessons.get_lesson_content(db_session, folder.id, "kinematics", user.id)

    assert content.summary == LESSON_CONTENT["summary"]
    assert len(generator.calls["lesson"]) == 1
    [row] = await lesson_rows(db_session)
    assert json.loads(row.content) == LESSON_CONTENT


async def test_invalid_lesson_output_is_retried(db_session, user, folder, lessons, stored_plan, generator, sleeper):
    generator.lesson_replies = [InvalidGenerationOutput("missing summary")]

    await lessons.get_lesson_content(db_session, folder.id, "kinematics", user.id)

    assert len(generator.calls["lesson"]) == 2
    assert sleeper.delays == [2.0]


async def test_lesson_generation_gives_up_with_validation_error(db_session, user, folder, lessons, stored_plan, generator):
    generator.lesson_replies = [InvalidGenerationOutput("missing summary")] * 4

    with pytest.raises(InvalidGenerationOutput) as exc_info:
        await lessons.get_lesson_content(db_session, folder.id, "kinematics", user.id)

    assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR
    assert await lesson_rows(db_session) == []


async def test_analyze_answer(lessons, generator):
    analysis = await lessons.analyze_answer("What is velocity?", "Speed with direction", "Kinematics notes")

    assert analysis.is_correct is True
    assert analysis.score == 85
    assert generator.calls["analysis"][0]["lesson_context"] == "Kinematics notes"


async def test_analyze_answer_retries_malformed_grading(lessons, generator, sleeper):
    generator.analysis_replies = [InvalidGenerationOutput("score is a string")]

    analysis = await lessons.analyze_answer("What is velocity?", "Speed with direction", "")

    assert analysis.concepts_to_review == ["Velocity"]
    assert len(generator.calls["analysis"]) == 2
    assert sleeper.delays == [2.0]


@pytest.mark.parametrize("question,answer", [("", "an answer"), ("A question?", "   ")])
async def test_analyze_answer_rejects_blank_input(lessons, generator, question, answer):
    with pytest.raises(ValidationFailure):
        await lessons.analyze_answer(question, answer, "context")
    assert generator.calls["analysis"] == []
