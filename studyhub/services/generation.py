"""Client for the text-generation service (Anthropic) with JSON extraction and validation."""

import json
import logging
from typing import Any, TypeVar

from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic, RateLimitError
from pydantic import BaseModel, ValidationError

from studyhub.config import get_settings
from studyhub.errors import GenerationError, InvalidGenerationOutput
from studyhub.schemas.lessons import AnswerAnalysis, LessonContent
from studyhub.schemas.study_plans import SourceDocument, StudyPlan
from studyhub.services import prompts

logger = logging.getLogger(__name__)
settings = get_settings()

M = TypeVar("M", bound=BaseModel)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse the first balanced {...} span in `text`.

    Tolerates prose and code fences around the object. Braces inside JSON
    strings are ignored when balancing.

    Raises:
        InvalidGenerationOutput: If no balanced object is found or it does not parse
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start:index + 1]
                    try:
                        parsed = json.loads(candidate)
                    except json.JSONDecodeError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
        start = text.find("{", start + 1)

    logger.error("Could not extract JSON from generation response: %s", text[:500])
    raise InvalidGenerationOutput("Generation response did not contain a JSON object")


def parse_generated(text: str, model: type[M], envelope: str | None = None) -> M:
    """
    Extract and validate a generated object.

    If the object is wrapped in its wire envelope (e.g. {"analysis": {...}}),
    the envelope is removed first.

    Raises:
        InvalidGenerationOutput: On missing fields or wrong types
    """
    data = extract_json_object(text)
    if envelope and isinstance(data.get(envelope), dict):
        data = data[envelope]
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = [
            {"field": ".".join(str(part) for part in err["loc"]), "error": err["msg"]}
            for err in e.errors()
        ]
        logger.error("Generated %s failed validation: %s", model.__name__, problems)
        raise InvalidGenerationOutput(
            f"Generated {model.__name__} is invalid",
            context={"problems": problems},
        ) from e


class GenerationClient:
    """Sends prompts to the language model and returns validated objects."""

    def __init__(self, client: AsyncAnthropic | None = None):
        """Initialize Anthropic client."""
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        system: str | None = None,
        messages: list[dict] | None = None,
    ) -> str:
        """
        Run one completion and return its text.

        Raises:
            GenerationError: On transport errors or an empty reply. Connection
                errors, rate limits and 5xx responses are retryable.
        """
        kwargs = {"system": system} if system else {}
        try:
            message = await self.client.messages.create(
                model=settings.llm_model,
                max_tokens=max_tokens,
                temperature=settings.llm_temperature,
                messages=messages or [{"role": "user", "content": prompt}],
                **kwargs,
            )
        except (APIConnectionError, RateLimitError) as e:
            raise GenerationError(f"Generation service unavailable: {e}") from e
        except APIStatusError as e:
            raise GenerationError(
                f"Generation service returned {e.status_code}: {e}",
                retryable=e.status_code >= 500,
                context={"status_code": e.status_code},
            ) from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise GenerationError("Generation service returned an empty response")
        return text

    async def request_study_plan(self, documents: list[SourceDocument]) -> str:
        """Ask for a study plan and return the raw reply text."""
        prompt = prompts.STUDY_PLAN_PROMPT.format(documents=prompts.format_documents(documents))
        return await self.complete(prompt, max_tokens=settings.llm_plan_max_tokens)

    async def generate_study_plan(self, documents: list[SourceDocument]) -> StudyPlan:
        """Generate a study plan from document texts."""
        text = await self.request_study_plan(documents)
        return parse_generated(text, StudyPlan, envelope="studyPlan")

    async def generate_lesson_content(
        self,
        title: str,
        description: str,
        key_points: list[str],
    ) -> LessonContent:
        """Generate teaching content for one lesson."""
        prompt = prompts.LESSON_CONTENT_PROMPT.format(
            title=title,
            description=description,
            key_points=", ".join(key_points),
        )
        text = await self.complete(prompt, max_tokens=settings.llm_lesson_max_tokens)
        return parse_generated(text, LessonContent, envelope="lessonContent")

    async def analyze_answer(self, question: str, answer: str, lesson_context: str) -> AnswerAnalysis:
        """Grade a free-text answer against the lesson context."""
        prompt = prompts.ANSWER_ANALYSIS_PROMPT.format(
            question=question,
            answer=answer,
            lesson_context=lesson_context,
        )
        text = await self.complete(prompt, max_tokens=settings.llm_analysis_max_tokens)
        return parse_generated(text, AnswerAnalysis, envelope="analysis")


# Singleton instance
generation_client = GenerationClient()
