from datetime import datetime

from blogcore.entities import Post, PostColumns, PostState, PostUpdate
from blogcore.repository import Repository
from blogcore.sorting import SHARED_VIEWS_SQL, PostSort, apply_sort

TAGGED_WITH_SQL = (
    "posts.id IN (SELECT pt.post_id FROM post_tags pt "
    "JOIN tags t ON t.id = pt.tag_id WHERE t.name = {})"
)
HAS_TRANSLATION_SQL = (
    "EXISTS (SELECT 1 FROM posts tr WHERE tr.original_post_id = posts.id)"
)


class PostRepository(Repository[Post, PostUpdate]):
    def __init__(self):
        super().__init__(
            entity_class=Post,
            update_class=PostUpdate,
            table_name="posts",
        )

    # Point lookups
    async def slug_taken(
        self, slug: str, locale: str, exclude_id: int | None = None
    ) -> bool:
        query = self.where(PostColumns.slug, slug).where(PostColumns.locale, locale)
        if exclude_id is not None:
            query = query.where(PostColumns.id, "!=", exclude_id)
        return await query.exists()

    async def find_published_by_id(self, post_id: int) -> Post | None:
        return await (
            self.where(PostColumns.id, post_id)
            .where(PostColumns.state, PostState.PUBLISHED.value)
            .first()
        )

    async def find_visible_by_slug(
        self, slug: str, locale: str, now: datetime
    ) -> Post | None:
        return await (
            self._visible(now)
            .where(PostColumns.slug, slug)
            .where(PostColumns.locale, locale)
            .first()
        )

    async def find_visible_by_slug_elsewhere(
        self, slug: str, locale: str, now: datetime
    ) -> list[Post]:
        """Visible posts sharing the slug in any other locale"""
        return await (
            self._visible(now)
            .where(PostColumns.slug, slug)
            .where(PostColumns.locale, "!=", locale)
            .order_by(PostColumns.id)
            .get()
        )

    # Translation links
    async def find_translation(self, identity_id: int, locale: str) -> Post | None:
        return await (
            self.where(PostColumns.original_post_id, identity_id)
            .where(PostColumns.locale, locale)
            .first()
        )

    async def find_variants(self, identity_id: int) -> list[Post]:
        """The identity row plus every translation pointing at it"""
        return await (
            self.where_raw(
                "(posts.id = {} OR posts.original_post_id = {})",
                identity_id,
                identity_id,
            )
            .order_by("posts.original_post_id IS NOT NULL")
            .order_by(PostColumns.locale)
            .get()
        )

    async def find_identities(self) -> list[Post]:
        return await (
            self.where(PostColumns.original_post_id, None).order_by(PostColumns.id).get()
        )

    # Engagement
    async def increment_views(self, identity_id: int) -> int | None:
        """Atomically bump the counter; None when the row does not exist"""
        return await self.db_ops.fetch_value(
            f"UPDATE {self.qualified_table_name} SET views = views + 1 "
            "WHERE id = $1 RETURNING views",
            [identity_id],
        )

    async def get_views(self, post_id: int) -> int | None:
        return await self.db_ops.fetch_value(
            f"SELECT views FROM {self.qualified_table_name} WHERE id = $1",
            [post_id],
        )

    # Listings
    def _visible(self, now: datetime):
        return self.where(PostColumns.state, PostState.PUBLISHED.value).where(
            PostColumns.created_at, "<=", now
        )

    async def list_page(
        self,
        *,
        page: int,
        size: int,
        sort: PostSort,
        locale: str | None = None,
        tag: str | None = None,
        visible_at: datetime | None = None,
    ) -> tuple[list[dict], int]:
        """Return one page of rows (with shared_views and has_translation) and the exact total"""
        query = self
        if visible_at is not None:
            query = query._visible(visible_at)
        if locale is not None:
            query = query.where(PostColumns.locale, locale)
        if tag is not None:
            query = query.where_raw(TAGGED_WITH_SQL, tag)

        total = await query.count()
        rows = await (
            query.select(
                "posts.*",
                f"{SHARED_VIEWS_SQL} AS shared_views",
                f"{HAS_TRANSLATION_SQL} AS has_translation",
            )
            ._apply_sort(sort)
            .paginate(page, size)
            .get_rows()
        )
        return rows, total

    def _apply_sort(self, sort: PostSort):
        return self._clone_with_query_builder(
            apply_sort(self._get_or_create_query_builder(), sort)
        )

    async def list_visible(self, now: datetime) -> list[Post]:
        return await (
            self._visible(now)
            .order_by_desc(PostColumns.created_at)
            .order_by_desc(PostColumns.id)
            .get()
        )
