"""Machine translation of an original post into its secondary locale"""

from typing import Any

import structlog

from blogcore.ai_generation import AIGenerationService
from blogcore.db_context import DatabaseManager
from blogcore.entities import PRIMARY_LOCALE, TRANSLATION_TARGETS, Locale, PostState
from blogcore.errors import ValidationError
from blogcore.models import PostCreate, TranslationResult
from blogcore.post_service import ContentService
from blogcore.validation import parse_post_id

logger = structlog.get_logger(__name__)

MAX_SUMMARY_LENGTH = 200


def truncate_summary(summary: str, limit: int = MAX_SUMMARY_LENGTH) -> str:
    if len(summary) <= limit:
        return summary
    return summary[: limit - 3] + "..."


def parse_target_locale(value: Any) -> str:
    if value is None:
        value = Locale.EN.value
    if value not in {locale.value for locale in TRANSLATION_TARGETS}:
        raise ValidationError("Only English translation is supported")
    return value


class TranslationService:
    def __init__(self, content: ContentService, ai: AIGenerationService):
        self.content = content
        self.ai = ai

    async def translate_post(
        self, post_id: Any, target_locale: str | None = Locale.EN.value
    ) -> TranslationResult:
        """Create a draft translation of an original post.

        The draft keeps the original's slug, tags and created_at. Nothing is
        sent to the model until the source and target have been checked.

        Raises:
            ValidationError: unsupported target, source is a translation or not in the primary locale
            NotFoundError: source post does not exist
            ConflictError: the translation already exists
        """
        post_id = parse_post_id(post_id)
        target_locale = parse_target_locale(target_locale)

        async with DatabaseManager.transaction(self.content.db_name):
            original = await self.content.linker.ensure_linkable(post_id, target_locale)
            if original.locale != PRIMARY_LOCALE.value:
                raise ValidationError("Only Korean posts can be translated")
            tags = await self.content.tags.names_for_post(post_id)

        log = logger.bind(original_post_id=post_id, target_locale=target_locale)

        log.info("translating_title")
        title = await self.ai.translate(original.title, "title")
        if not title:
            raise ValidationError("AI failed to translate title")

        log.info("translating_content", length=len(original.content))
        content = await self.ai.translate(original.content, "content")
        if not content:
            raise ValidationError("AI failed to translate content")

        summary = original.summary
        if original.summary:
            translated_summary = await self.ai.translate(original.summary, "summary")
            if translated_summary:
                summary = truncate_summary(translated_summary)

        translated = await self.content.create_post(
            PostCreate(
                title=title,
                content=content,
                summary=summary,
                slug=original.slug,
                tags=tags,
                state=PostState.DRAFT,
                locale=target_locale,
                original_post_id=post_id,
                created_at=original.created_at,
            )
        )
        log.info(
            "post_translated",
            translated_post_id=translated.id,
            content_length_ratio=round(len(content) / len(original.content), 2),
        )
        return TranslationResult(original_post_id=post_id, translated_post=translated)
