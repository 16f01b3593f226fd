"""HTTP API tests."""

import json
from uuid import uuid4

import pytest
from sqlalchemy import select

from studyhub.api.routes.documents import content_disposition
from studyhub.db.models import Document, Folder, StudyPlanRecord

from tests.fakes import LESSON_CONTENT, PHYSICS_PLAN


@pytest.fixture
async def stored_plan(db_session, user, folder):
    db_session.add(StudyPlanRecord(folder_id=folder.id, user_id=user.id, content=json.dumps(PHYSICS_PLAN)))
    await db_session.commit()


async def upload_notes(client, folder_id, data=b"Force equals mass times acceleration."):
    return await client.post(
        f"/folders/{folder_id}/documents",
        files=[("files", ("notes.txt", data, "text/plain"))],
    )


async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestFolders:
    async def test_create_list_and_get(self, client):
        created = await client.post("/folders", json={"name": "Physics"})
        assert created.status_code == 201
        folder_id = created.json()["id"]

        listed = await client.get("/folders")
        assert [f["name"] for f in listed.json()] == ["Physics"]

        fetched = await client.get(f"/folders/{folder_id}")
        assert fetched.status_code == 200
        assert fetched.json()["documents"] == []

    async def test_blank_name_is_a_validation_error(self, client):
        response = await client.post("/folders", json={"name": "   "})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["message"] == "Folder name is required."

    async def test_other_users_folder_is_not_found(self, client, db_session, other_user):
        folder = Folder(user_id=other_user.id, name="Private")
        db_session.add(folder)
        await db_session.commit()

        response = await client.get(f"/folders/{folder.id}")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestDocuments:
    async def test_upload_reports_each_file(self, client, folder, storage):
        response = await client.post(
            f"/folders/{folder.id}/documents",
            files=[
                ("files", ("notes.txt", b"Forces", "text/plain")),
                ("files", ("clip.mp4", b"\x00\x01", "video/mp4")),
            ],
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["uploaded"], body["rejected"], body["failed"]) == (1, 1, 0)
        assert [r["status"] for r in body["results"]] == ["uploaded", "rejected"]
        assert body["results"][0]["document"]["name"] == "notes.txt"
        assert body["results"][1]["error"] == "VALIDATION_ERROR"
        assert len(storage.objects) == 1

    async def test_upload_failure_is_reported_per_file(self, client, folder, storage):
        storage.upload_failures = 10

        response = await upload_notes(client, folder.id)

        [result] = response.json()["results"]
        assert result["status"] == "failed"
        assert result["error"] == "UPLOAD_ERROR"

    async def test_list_download_and_delete(self, client, folder, db_session):
        await upload_notes(client, folder.id, data=b"hello physics")

        listed = await client.get(f"/folders/{folder.id}/documents")
        [document] = listed.json()

        downloaded = await client.get(f"/documents/{document['id']}/download")
        assert downloaded.status_code == 200
        assert downloaded.content == b"hello physics"
        assert "notes.txt" in downloaded.headers["content-disposition"]

        deleted = await client.delete(f"/documents/{document['id']}")
        assert deleted.status_code == 204
        assert (await db_session.execute(select(Document))).scalars().all() == []

    async def test_download_non_ascii_name(self, client, folder):
        uploaded = await client.post(
            f"/folders/{folder.id}/documents",
            files=[("files", ("Физика.txt", b"sila", "text/plain"))],
        )
        [result] = uploaded.json()["results"]
        assert result["status"] == "uploaded"

        downloaded = await client.get(f"/documents/{result['document']['id']}/download")

        assert downloaded.status_code == 200
        assert downloaded.content == b"sila"
        disposition = downloaded.headers["content-disposition"]
        assert "filename*=UTF-8''%D0%A4%D0%B8%D0%B7%D0%B8%D0%BA%D0%B0.txt" in disposition
        assert 'filename="______.txt"' in disposition

    async def test_upload_to_unknown_folder(self, client):
        response = await upload_notes(client, uuid4())
        assert response.status_code == 404


class TestStudyPlans:
    async def test_plan_is_null_before_generation(self, client, folder):
        response = await client.get(f"/folders/{folder.id}/study-plan")
        assert response.status_code == 200
        assert response.json() == {"folder_id": str(folder.id), "study_plan": None}

    async def test_generate_then_fetch(self, client, folder):
        await upload_notes(client, folder.id)

        generated = await client.post(f"/folders/{folder.id}/study-plan/generate")
        assert generated.status_code == 200
        assert generated.json()["study_plan"] == PHYSICS_PLAN

        fetched = await client.get(f"/folders/{folder.id}/study-plan")
        assert fetched.json()["study_plan"] == PHYSICS_PLAN

        status = await client.get(f"/folders/{folder.id}/study-plan/status")
        body = status.json()
        assert body["phase"] == "idle"
        assert body["attempt"] == 1
        assert body["last_error"] is None
        assert body["elapsed_ms"] >= 0

    async def test_refresh_rereads_stored_plan(self, client, folder, stored_plan, db_session):
        first = await client.get(f"/folders/{folder.id}/study-plan")
        assert first.json()["study_plan"] == PHYSICS_PLAN

        revised = {"chapters": [PHYSICS_PLAN["chapters"][1]]}
        [record] = (await db_session.execute(select(StudyPlanRecord))).scalars().all()
        record.content = json.dumps(revised)
        await db_session.commit()

        cached = await client.get(f"/folders/{folder.id}/study-plan")
        assert cached.json()["study_plan"] == PHYSICS_PLAN

        refreshed = await client.get(f"/folders/{folder.id}/study-plan", params={"refresh": "true"})
        assert refreshed.json()["study_plan"] == revised

    async def test_generate_without_documents(self, client, folder):
        response = await client.post(f"/folders/{folder.id}/study-plan/generate")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_generation_failure(self, client, folder, generator):
        await upload_notes(client, folder.id)
        generator.plan_replies = ["no json"] * 4

        response = await client.post(f"/folders/{folder.id}/study-plan/generate")

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "GENERATION_ERROR"
        assert body["message"] == "There was an error generating your study material. Please try again."


class TestProgress:
    async def test_toggle_and_summary(self, client, folder, stored_plan):
        toggled = await client.post(
            f"/folders/{folder.id}/progress/toggle",
            json={"chapter_title": "Mechanics", "lesson_title": "Kinematics"},
        )
        assert toggled.status_code == 200
        assert toggled.json() == {
            "chapter_title": "Mechanics",
            "lesson_title": "Kinematics",
            "lesson_id": "Mechanics-Kinematics",
            "completed": True,
        }

        progress = await client.get(f"/folders/{folder.id}/progress")
        body = progress.json()
        assert [l["lesson_id"] for l in body["lessons"]] == ["Mechanics-Kinematics"]
        assert body["summary"] == {"completed": 1, "total": 3, "percent": 33}

    async def test_summary_is_null_without_plan(self, client, folder):
        response = await client.get(f"/folders/{folder.id}/progress")
        assert response.json() == {"lessons": [], "summary": None}


class TestLessons:
    async def test_get_lesson(self, client, folder, stored_plan):
        response = await client.get(f"/folders/{folder.id}/lessons/kinematics")

        assert response.status_code == 200
        body = response.json()
        assert body["chapter_title"] == "Mechanics"
        assert body["lesson_id"] == "kinematics"
        assert body["lesson_content"] == LESSON_CONTENT

    async def test_unknown_lesson(self, client, folder, stored_plan):
        response = await client.get(f"/folders/{folder.id}/lessons/optics")
        assert response.status_code == 404

    async def test_analyze_uses_lesson_content_as_context(self, client, folder, stored_plan, generator):
        response = await client.post(
            f"/folders/{folder.id}/lessons/kinematics/analyze",
            json={"question": "What is acceleration?", "answer": "Change in velocity over time"},
        )

        assert response.status_code == 200
        assert response.json()["analysis"]["isCorrect"] is True
        assert generator.calls["analysis"][0]["lesson_context"] == LESSON_CONTENT["content"]

    async def test_analyze_with_explicit_context(self, client, folder, stored_plan, generator):
        response = await client.post(
            f"/folders/{folder.id}/lessons/kinematics/analyze",
            json={"question": "Q?", "answer": "A.", "lesson_context": "Custom context"},
        )

        assert response.status_code == 200
        assert generator.calls["lesson"] == []
        assert generator.calls["analysis"][0]["lesson_context"] == "Custom context"


class TestChat:
    async def test_chat_reply(self, client, generator):
        response = await client.post(
            "/chat",
            json={"messages": [{"role": "user", "content": "What is velocity?"}], "topic": "Physics"},
        )

        assert response.status_code == 200
        assert response.json() == {"response": "Velocity is speed with a direction."}

    async def test_chat_stream(self, client):
        response = await client.post(
            "/chat/stream",
            json={"messages": [{"role": "user", "content": "What is velocity?"}]},
        )

        assert response.status_code == 200
        assert "event: message" in response.text
        assert "data: Velocity " in response.text
        assert "event: done" in response.text

    async def test_chat_requires_a_message(self, client):
        response = await client.post("/chat", json={"messages": []})
        assert response.status_code == 422


def test_content_disposition_escapes_quotes():
    assert content_disposition('my "notes".txt') == (
        'attachment; filename="my _notes_.txt"; filename*=UTF-8\'\'my%20%22notes%22.txt'
    )
