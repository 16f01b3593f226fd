"""Free-form tutor chat with streaming support."""

import logging
from collections.abc import AsyncIterator

from anthropic import APIConnectionError, RateLimitError

from studyhub.config import get_settings, sanitize_error
from studyhub.services import prompts
from studyhub.services.generation import GenerationClient, generation_client
from studyhub.services.retry import RetryPolicy, retry

logger = logging.getLogger(__name__)
settings = get_settings()

# Transient error types that warrant retrying
_RETRYABLE_ERRORS = (APIConnectionError, RateLimitError)


def system_prompt(topic: str | None = None) -> str:
    if topic and topic.strip():
        return prompts.TOPIC_TUTOR_SYSTEM_PROMPT.format(topic=topic.strip())
    return prompts.TUTOR_SYSTEM_PROMPT


class TutorChatService:
    """Answers tutoring conversations, optionally focused on a topic."""

    def __init__(
        self,
        generator: GenerationClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.generator = generator or generation_client
        self.retry_policy = retry_policy or RetryPolicy.for_generation(settings)

    async def reply(self, messages: list[dict], topic: str | None = None) -> str:
        """
        Get the tutor's full reply to a conversation.

        Args:
            messages: Conversation so far (dicts with 'role' and 'content'),
                ending with the user's turn
            topic: Optional subject the tutor specializes in

        Raises:
            GenerationError: If the generation service fails after retries
        """
        return await retry(
            lambda: self.generator.complete(
                "",
                max_tokens=settings.llm_chat_max_tokens,
                system=system_prompt(topic),
                messages=messages,
            ),
            self.retry_policy,
            description="Tutor chat reply",
        )

    async def stream_reply(self, messages: list[dict], topic: str | None = None) -> AsyncIterator[str]:
        """
        Stream the tutor's reply as text chunks.

        Transient connection errors are retried. A failure that survives the
        retries is reported in-band as a final "[Error: ...]" chunk.
        """
        max_attempts = self.retry_policy.max_retries + 1

        for attempt in range(max_attempts):
            try:
                async with self.generator.client.messages.stream(
                    model=settings.llm_model,
                    max_tokens=settings.llm_chat_max_tokens,
                    temperature=settings.llm_temperature,
                    system=system_prompt(topic),
                    messages=messages,
                ) as stream:
                    async for text in stream.text_stream:
                        yield text
                return

            except _RETRYABLE_ERRORS as e:
                if attempt < max_attempts - 1:
                    delay = self.retry_policy.delay_for(attempt)
                    logger.warning(
                        "Tutor chat stream transient error (attempt %d/%d), retrying in %.1fs: %s",
                        attempt + 1, max_attempts, delay, str(e),
                    )
                    await self.retry_policy.sleep(delay)
                else:
                    logger.exception("Tutor chat streaming failed after %d attempts", max_attempts)
                    safe_msg = sanitize_error(e, generic_message="An error occurred while generating the response.")
                    yield f"\n\n[Error: {safe_msg}]"

            except Exception as e:
                logger.exception("Error during tutor chat streaming")
                safe_msg = sanitize_error(e, generic_message="An error occurred while generating the response.")
                yield f"\n\n[Error: {safe_msg}]"
                return


# Singleton instance
tutor_chat_service = TutorChatService()
