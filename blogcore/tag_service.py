from datetime import UTC, datetime

from blogcore.db_context import DatabaseManager
from blogcore.models import TagSummary
from blogcore.tag_repository import TagRepository
from blogcore.validation import parse_locale


class TagService:
    def __init__(self, db_name: str = "default"):
        self.db_name = db_name
        self.tags = TagRepository()

    async def list_active_tags(self, locale: str | None = None) -> list[TagSummary]:
        """Tags in use, by name.

        Without a locale the stored post_count is reported; with one, counts
        only cover that locale's published, visible posts.
        """
        if locale is not None:
            locale = parse_locale(locale)

        async with DatabaseManager.transaction(self.db_name):
            if locale is None:
                tags = await self.tags.list_active()
            else:
                tags = await self.tags.list_active_for_locale(locale, datetime.now(UTC))

        return [
            TagSummary(
                id=tag.id,
                name=tag.name,
                post_count=tag.post_count,
                created_at=tag.created_at,
            )
            for tag in tags
        ]
