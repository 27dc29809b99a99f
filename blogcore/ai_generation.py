"""AI text generation: summaries, slugs and translations.

The model is reached through a ``TextGenerator``; every call goes through the
same retry loop as embeddings (3 attempts, exponential backoff).
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import structlog
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt
from tenacity.wait import wait_base

from blogcore.embedding_service import MAX_ATTEMPTS, default_retry_wait
from blogcore.errors import ValidationError
from blogcore.slug import sanitize_slug

logger = structlog.get_logger(__name__)

MIN_SUMMARY_SOURCE_LENGTH = 50
SLUG_CONTENT_PREVIEW = 500

SUMMARY_SYSTEM_PROMPT = """You are a professional blog editor. Generate a concise, engaging summary for the given blog post content.
The summary should:
- Be 2-3 sentences long (maximum 200 characters)
- Capture the main topic and key points
- Be written in the same language as the original content
Respond with a JSON object of the form {"summary": "..."}."""

SLUG_SYSTEM_PROMPT = """You are a SEO expert. Generate a URL-friendly slug for the given blog post.
The slug should:
- Be in English (transliterate if the title is in another language)
- Use lowercase letters, numbers, and hyphens only
- Be 3-6 words long, separated by hyphens
- Not include stop words unless necessary for meaning
- Maximum 60 characters
Respond with a JSON object of the form {"slug": "..."}."""

# (system prompt, max tokens) per translated field
TRANSLATION_PROMPTS: dict[str, tuple[str, int]] = {
    "title": (
        "You are a Korean to English translator. Output only the translation, nothing else.",
        200,
    ),
    "content": (
        "You are a Korean to English translator for technical blog posts. "
        "Translate the Markdown content. Preserve all Markdown formatting, URLs, "
        "image paths, and code blocks. Only translate Korean text to English.",
        16384,
    ),
    "summary": (
        "Translate Korean to English. Max 200 characters. Output only the translation.",
        256,
    ),
}


class TextGenerator(ABC):
    """Single-turn text completion."""

    @abstractmethod
    async def generate(
        self, system: str, prompt: str, max_tokens: int, json_output: bool = False
    ) -> str:
        """Return the model's reply; ``json_output`` asks for a JSON object."""
        ...


class OpenAITextGenerator(TextGenerator):
    """Chat completions from the OpenAI API; failures raise the client's exception."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-2024-08-06",
        client: AsyncOpenAI | None = None,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate(
        self, system: str, prompt: str, max_tokens: int, json_output: bool = False
    ) -> str:
        kwargs: dict[str, Any] = {}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            **kwargs,
        )
        content = response.choices[0].message.content if response.choices else None
        if content is None:
            raise ValueError("Invalid response from OpenAI API: no output text")
        if response.usage is not None:
            logger.debug(
                "text_generated",
                model=self.model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        return content


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "generation_attempt_failed",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


class AIGenerationService:
    def __init__(self, generator: TextGenerator, retry_wait: wait_base | None = None):
        self.generator = generator
        self._retry_wait = retry_wait or default_retry_wait()

    async def _generate(
        self, system: str, prompt: str, max_tokens: int, json_output: bool = False
    ) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=self._retry_wait,
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                reply = await self.generator.generate(
                    system, prompt, max_tokens, json_output=json_output
                )
        return reply

    async def _generate_field(self, system: str, prompt: str, field: str) -> str:
        """Ask for a JSON object and pull one string field out of it"""
        reply = await self._generate(system, prompt, 512, json_output=True)
        try:
            value = json.loads(reply)[field]
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            raise ValueError(f"AI response has no '{field}' field") from exc
        if not isinstance(value, str):
            raise ValueError(f"AI response field '{field}' is not a string")
        return value.strip()

    async def generate_summary(self, text: str) -> str:
        if not isinstance(text, str) or len(text.strip()) < MIN_SUMMARY_SOURCE_LENGTH:
            raise ValidationError(
                f"Text must be at least {MIN_SUMMARY_SOURCE_LENGTH} characters"
            )
        summary = await self._generate_field(SUMMARY_SYSTEM_PROMPT, text, "summary")
        logger.info("summary_generated", summary_length=len(summary))
        return summary

    async def generate_slug(self, title: str, content: str) -> str:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required")
        prompt = f"Title: {title}\n\nContent preview: {(content or '')[:SLUG_CONTENT_PREVIEW]}"
        raw_slug = await self._generate_field(SLUG_SYSTEM_PROMPT, prompt, "slug")
        slug = sanitize_slug(raw_slug)
        if not slug:
            raise ValidationError("AI failed to generate a slug")
        logger.info("slug_generated", raw_slug=raw_slug, slug=slug)
        return slug

    async def translate(self, text: str, kind: str) -> str:
        """Translate one post field (title, content or summary) from Korean to English"""
        system, max_tokens = TRANSLATION_PROMPTS[kind]
        return (await self._generate(system, text, max_tokens)).strip()
