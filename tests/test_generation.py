"""Tests for generation output parsing and the generation client."""

import json
from types import SimpleNamespace

import httpx
import pytest
from anthropic import APIConnectionError, APIStatusError, RateLimitError

from studyhub.errors import ErrorKind, GenerationError, InvalidGenerationOutput
from studyhub.schemas.lessons import AnswerAnalysis, LessonContent
from studyhub.schemas.study_plans import SourceDocument, StudyPlan, lesson_slug
from studyhub.services.generation import GenerationClient, extract_json_object, parse_generated

from tests.fakes import ANSWER_ANALYSIS, LESSON_CONTENT, PHYSICS_PLAN

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class ScriptedMessages:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=outcome)])


def scripted_client(*outcomes) -> GenerationClient:
    return GenerationClient(client=SimpleNamespace(messages=ScriptedMessages(outcomes)))


def status_error(cls, status_code: int):
    response = httpx.Response(status_code, request=_REQUEST)
    return cls(f"HTTP {status_code}", response=response, body=None)


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_object_wrapped_in_prose_and_fences(self):
        text = 'Sure! Here it is:\n```json\n{"chapters": [{"title": "One"}]}\n```\nGood luck.'
        assert extract_json_object(text) == {"chapters": [{"title": "One"}]}

    def test_braces_inside_strings_are_ignored(self):
        text = 'prefix {"code": "if (x) { return \\"}\\"; }", "n": 2} suffix {"other": true}'
        assert extract_json_object(text) == {"code": 'if (x) { return "}"; }', "n": 2}

    def test_skips_unparseable_span_before_valid_object(self):
        assert extract_json_object("{not json} then {\"ok\": 1}") == {"ok": 1}

    @pytest.mark.parametrize("text", ["", "no json here", "{unterminated", "[1, 2, 3]"])
    def test_no_object_raises(self, text):
        with pytest.raises(InvalidGenerationOutput) as exc_info:
            extract_json_object(text)
        assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR
        assert exc_info.value.retryable


class TestParseGenerated:
    def test_study_plan(self):
        plan = parse_generated(json.dumps(PHYSICS_PLAN), StudyPlan, envelope="studyPlan")
        assert plan.chapters[0].lessons[0].estimated_duration == "45 mins"

    def test_envelope_is_unwrapped(self):
        text = json.dumps({"analysis": ANSWER_ANALYSIS})
        analysis = parse_generated(text, AnswerAnalysis, envelope="analysis")
        assert analysis.score == 85

    def test_empty_chapters_rejected(self):
        with pytest.raises(InvalidGenerationOutput) as exc_info:
            parse_generated('{"chapters": []}', StudyPlan)
        assert exc_info.value.context["problems"][0]["field"] == "chapters"

    def test_missing_lesson_field_rejected(self):
        broken = json.loads(json.dumps(PHYSICS_PLAN))
        del broken["chapters"][0]["lessons"][0]["keyPoints"]
        with pytest.raises(InvalidGenerationOutput):
            parse_generated(json.dumps(broken), StudyPlan)

    def test_score_as_string_rejected(self):
        with pytest.raises(InvalidGenerationOutput):
            parse_generated(json.dumps({**ANSWER_ANALYSIS, "score": "85"}), AnswerAnalysis)

    @pytest.mark.parametrize("score", [-1, 101])
    def test_score_out_of_range_rejected(self, score):
        with pytest.raises(InvalidGenerationOutput):
            parse_generated(json.dumps({**ANSWER_ANALYSIS, "score": score}), AnswerAnalysis)

    def test_lesson_content_optional_fields(self):
        content = parse_generated(json.dumps({"lessonContent": LESSON_CONTENT}), LessonContent, envelope="lessonContent")
        assert content.examples[0].code is None
        assert content.to_wire() == LESSON_CONTENT


def test_lesson_slug():
    assert lesson_slug("Conservation of Energy") == "conservation-of-energy"
    assert lesson_slug("Intro  to\tAtoms") == "intro-to-atoms"


class TestGenerationClient:
    async def test_generate_study_plan_sends_documents(self):
        client = scripted_client(json.dumps(PHYSICS_PLAN))

        plan = await client.generate_study_plan([SourceDocument(name="notes.txt", content="Forces")])

        assert plan.lesson_count() == 3
        [call] = client.client.messages.calls
        prompt = call["messages"][0]["content"]
        assert "# Document: notes.txt\nForces" in prompt
        assert call["max_tokens"] == 4096

    async def test_generate_lesson_content(self):
        client = scripted_client(json.dumps(LESSON_CONTENT))

        content = await client.generate_lesson_content("Kinematics", "Describing motion", ["Velocity"])

        assert content.title == "Kinematics"
        assert "Kinematics" in client.client.messages.calls[0]["messages"][0]["content"]

    async def test_analyze_answer(self):
        client = scripted_client("Result: " + json.dumps(ANSWER_ANALYSIS))

        analysis = await client.analyze_answer("What is velocity?", "Speed with direction", "notes")

        assert analysis.is_correct is True
        assert client.client.messages.calls[0]["max_tokens"] == 2048

    async def test_empty_reply_is_a_generation_error(self):
        client = scripted_client("   ")
        with pytest.raises(GenerationError):
            await client.complete("hi", max_tokens=10)

    async def test_connection_errors_are_retryable(self):
        client = scripted_client(APIConnectionError(request=_REQUEST))
        with pytest.raises(GenerationError) as exc_info:
            await client.complete("hi", max_tokens=10)
        assert exc_info.value.retryable
        assert exc_info.value.kind == ErrorKind.GENERATION_ERROR

    async def test_rate_limit_is_retryable(self):
        client = scripted_client(status_error(RateLimitError, 429))
        with pytest.raises(GenerationError) as exc_info:
            await client.complete("hi", max_tokens=10)
        assert exc_info.value.retryable

    @pytest.mark.parametrize("status_code,retryable", [(500, True), (529, True), (400, False), (401, False)])
    async def test_status_errors(self, status_code, retryable):
        client = scripted_client(status_error(APIStatusError, status_code))
        with pytest.raises(GenerationError) as exc_info:
            await client.complete("hi", max_tokens=10)
        assert exc_info.value.retryable is retryable
        assert exc_info.value.context["status_code"] == status_code
