"""Post reads and writes.

Every public method validates its input first, then runs its store work in
one ``DatabaseManager.transaction``. Embedding work is handed to the
background runner only after that transaction has committed.
"""

from datetime import UTC, datetime
from typing import Any

import structlog

from blogcore.background import BackgroundTasks
from blogcore.db_context import DatabaseManager
from blogcore.embedding_service import DEFAULT_RELATED_COUNT, EmbeddingService
from blogcore.entities import PRIMARY_LOCALE, DisplayState, Post, PostState, PostUpdate
from blogcore.errors import ConflictError, NotFoundError, ValidationError
from blogcore.models import (
    AdminPostListItem,
    BulkEmbeddingResult,
    DeletedResult,
    EmbeddingResult,
    LocaleVariant,
    Page,
    PostCreate,
    PostDetail,
    PostEdit,
    PostListItem,
    PostRedirect,
    RelatedPost,
    SitemapEntry,
)
from blogcore.post_repository import PostRepository
from blogcore.slug import slugify
from blogcore.sorting import DEFAULT_SORT
from blogcore.tag_repository import TagRepository
from blogcore.translation_linker import TranslationLinker, resolve_identity
from blogcore.validation import (
    is_decimal,
    parse_locale,
    parse_post_create,
    parse_post_edit,
    parse_post_id,
    parse_sort,
    validate_pagination,
)

logger = structlog.get_logger(__name__)


def display_state(state: str, created_at: datetime, now: datetime) -> DisplayState:
    """Admin label: a published post with a future timestamp is scheduled"""
    if state == PostState.PUBLISHED.value and created_at > now:
        return DisplayState.SCHEDULED
    return DisplayState(state)


def _normalize_tag(tag: Any) -> str | None:
    if tag is None:
        return None
    if not isinstance(tag, str):
        raise ValidationError("Tag must be a string")
    return tag.strip() or None


def _is_numeric_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, str) and is_decimal(value))


class ContentService:
    def __init__(
        self,
        db_name: str = "default",
        embedding_service: EmbeddingService | None = None,
        background: BackgroundTasks | None = None,
        related_posts_count: int = DEFAULT_RELATED_COUNT,
    ):
        self.db_name = db_name
        self.posts = PostRepository()
        self.tags = TagRepository()
        self.linker = TranslationLinker(self.posts)
        self.embedding_service = embedding_service
        self.background = background or BackgroundTasks()
        self.related_posts_count = related_posts_count

    # Listings
    async def list_posts(
        self,
        locale: str = PRIMARY_LOCALE,
        page: int = 0,
        size: int = 10,
        sort: str = DEFAULT_SORT,
        tag: str | None = None,
    ) -> Page[PostListItem]:
        """Published posts of one locale that are already visible"""
        page, size = validate_pagination(page, size)
        post_sort = parse_sort(sort)
        locale = parse_locale(locale)
        tag = _normalize_tag(tag)

        async with DatabaseManager.transaction(self.db_name):
            rows, total = await self.posts.list_page(
                page=page,
                size=size,
                sort=post_sort,
                locale=locale,
                tag=tag,
                visible_at=datetime.now(UTC),
            )
            tags_by_post = await self.tags.names_for_posts([row["id"] for row in rows])

        items = [
            PostListItem(
                id=row["id"],
                slug=row["slug"],
                title=row["title"],
                summary=row["summary"],
                tags=tags_by_post.get(row["id"], []),
                locale=row["locale"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                views=row["shared_views"],
            )
            for row in rows
        ]
        return Page[PostListItem](
            content=items, total_elements=total, page_number=page, page_size=size
        )

    async def list_admin_posts(
        self,
        locale: str | None = None,
        page: int = 0,
        size: int = 10,
        sort: str = DEFAULT_SORT,
    ) -> Page[AdminPostListItem]:
        """Every post in any state, with scheduled posts labeled as such"""
        page, size = validate_pagination(page, size)
        post_sort = parse_sort(sort)
        if locale is not None:
            locale = parse_locale(locale)

        now = datetime.now(UTC)
        async with DatabaseManager.transaction(self.db_name):
            rows, total = await self.posts.list_page(
                page=page, size=size, sort=post_sort, locale=locale
            )
            tags_by_post = await self.tags.names_for_posts([row["id"] for row in rows])

        items = [
            AdminPostListItem(
                id=row["id"],
                slug=row["slug"],
                title=row["title"],
                summary=row["summary"],
                tags=tags_by_post.get(row["id"], []),
                locale=row["locale"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
                views=row["shared_views"],
                state=display_state(row["state"], row["created_at"], now),
                original_post_id=row["original_post_id"],
                has_translation=row["has_translation"],
            )
            for row in rows
        ]
        return Page[AdminPostListItem](
            content=items, total_elements=total, page_number=page, page_size=size
        )

    async def list_sitemap_entries(self) -> list[SitemapEntry]:
        async with DatabaseManager.transaction(self.db_name):
            posts = await self.posts.list_visible(datetime.now(UTC))
        return [
            SitemapEntry(slug=post.slug, locale=post.locale, updated_at=post.updated_at)
            for post in posts
        ]

    # Single reads
    async def get_post(
        self, slug_or_id: str | int, locale: str = PRIMARY_LOCALE
    ) -> PostDetail | PostRedirect:
        """Public read model of one post.

        A numeric value is treated as a post id and answered with a redirect to
        the post's slug. A slug that only exists in another locale redirects to
        the matching translation when one is visible.
        """
        locale = parse_locale(locale)
        now = datetime.now(UTC)

        if _is_numeric_id(slug_or_id):
            post_id = parse_post_id(slug_or_id)
            async with DatabaseManager.transaction(self.db_name):
                post = await self.posts.find_published_by_id(post_id)
            if post is None or not post.is_visible_at(now):
                raise NotFoundError("Post not found")
            return PostRedirect(slug=post.slug, locale=post.locale)

        if not isinstance(slug_or_id, str) or not slug_or_id.strip():
            raise ValidationError("Slug parameter is required")
        slug = slug_or_id.strip()

        async with DatabaseManager.transaction(self.db_name):
            post = await self.posts.find_visible_by_slug(slug, locale, now)
            if post is None:
                redirect = await self._locale_redirect(slug, locale, now)
                if redirect is None:
                    raise NotFoundError("Post not found")
                return redirect
            detail = await self._build_detail(post, visible_at=now)

        detail.related_posts = await self._related(resolve_identity(post), now)
        return detail

    async def get_admin_post(self, post_id: Any) -> PostDetail:
        post_id = parse_post_id(post_id)
        async with DatabaseManager.transaction(self.db_name):
            post = await self.posts.find_by_id(post_id)
            if post is None:
                raise NotFoundError("Post not found")
            return await self._build_detail(post)

    async def _locale_redirect(
        self, slug: str, locale: str, now: datetime
    ) -> PostRedirect | None:
        for other in await self.posts.find_visible_by_slug_elsewhere(slug, locale, now):
            variant = await self.linker.find_variant(resolve_identity(other), locale)
            if variant is not None and variant.is_visible_at(now):
                return PostRedirect(slug=variant.slug, locale=variant.locale)
        return None

    async def _build_detail(
        self, post: Post, visible_at: datetime | None = None
    ) -> PostDetail:
        """Detail view of a stored post; with visible_at only visible variants are listed"""
        identity_id = resolve_identity(post)
        tags = await self.tags.names_for_post(post.id)
        views = await self.posts.get_views(identity_id)
        variants = await self.linker.list_variants(identity_id)
        if visible_at is not None:
            variants = [variant for variant in variants if variant.is_visible_at(visible_at)]

        return PostDetail(
            **post.model_dump(exclude={"views"}),
            tags=tags,
            views=views if views is not None else post.views,
            available_locales=[
                LocaleVariant(post_id=variant.id, locale=variant.locale, slug=variant.slug)
                for variant in variants
            ],
        )

    async def _related(self, identity_id: int, now: datetime) -> list[RelatedPost]:
        if self.embedding_service is None:
            return []
        return await self.embedding_service.find_related(
            identity_id, self.related_posts_count, now=now
        )

    # Writes
    async def create_post(self, data: PostCreate | dict[str, Any]) -> PostDetail:
        post_data = parse_post_create(data)
        slug = post_data.slug or slugify(post_data.title)
        if not slug:
            raise ValidationError("Slug could not be derived from the title")

        now = datetime.now(UTC)
        async with DatabaseManager.transaction(self.db_name):
            if post_data.original_post_id is not None:
                await self.linker.ensure_linkable(
                    post_data.original_post_id, post_data.locale
                )
            if await self.posts.slug_taken(slug, post_data.locale):
                raise ConflictError("Slug already exists")

            post = await self.posts.create(
                Post(
                    slug=slug,
                    title=post_data.title,
                    content=post_data.content,
                    summary=post_data.summary,
                    state=post_data.state,
                    locale=post_data.locale,
                    original_post_id=post_data.original_post_id,
                    created_at=post_data.created_at or now,
                    updated_at=now,
                )
            )
            await self._attach_tags(post.id, post_data.tags)
            detail = await self._build_detail(post)

        logger.info(
            "post_created",
            post_id=post.id,
            slug=slug,
            locale=post.locale,
            original_post_id=post.original_post_id,
        )
        self._schedule_index(post)
        return detail

    async def update_post(self, post_id: Any, data: PostEdit | dict[str, Any]) -> PostDetail:
        """Replace a post's fields and its full tag set"""
        post_id = parse_post_id(post_id)
        edit = parse_post_edit(data)

        now = datetime.now(UTC)
        async with DatabaseManager.transaction(self.db_name):
            existing = await self.posts.find_by_id(post_id)
            if existing is None:
                raise NotFoundError("Post not found")

            slug = edit.slug or existing.slug
            if await self.posts.slug_taken(slug, existing.locale, exclude_id=post_id):
                raise ConflictError("Slug already exists")

            post = await self.posts.update(
                post_id,
                PostUpdate(
                    slug=slug,
                    title=edit.title,
                    content=edit.content,
                    summary=edit.summary,
                    state=edit.state,
                    updated_at=now,
                ),
            )
            removed = await self.tags.unlink_all(post_id)
            await self.tags.adjust_post_counts(removed, -1)
            await self._attach_tags(post_id, edit.tags)
            detail = await self._build_detail(post)

        logger.info("post_updated", post_id=post_id, slug=slug)
        self._schedule_index(post)
        return detail

    async def delete_post(self, post_id: Any) -> DeletedResult:
        """Delete a post; an identity post takes its translations and comments with it"""
        post_id = parse_post_id(post_id)
        async with DatabaseManager.transaction(self.db_name):
            existing = await self.posts.find_by_id(post_id)
            if existing is None:
                raise NotFoundError("Post not found")

            doomed = [post_id]
            if existing.is_identity:
                doomed += [
                    variant.id
                    for variant in await self.linker.list_variants(post_id)
                    if variant.id != post_id
                ]
            await self.tags.adjust_post_counts(
                await self.tags.tag_ids_for_posts(doomed), -1
            )
            await self.posts.delete(post_id)

        logger.info("post_deleted", post_id=post_id, removed_posts=len(doomed))
        if existing.is_identity and self.embedding_service is not None:
            self.background.submit(
                self.embedding_service.delete_embedding(post_id),
                name=f"delete-embedding-{post_id}",
                key=post_id,
                operation="delete_embedding",
                identity_id=post_id,
            )
        return DeletedResult(id=post_id)

    async def _attach_tags(self, post_id: int, names: list[str]) -> None:
        tag_ids = []
        for name in names:
            tag = await self.tags.get_or_create(name)
            await self.tags.link(post_id, tag.id)
            tag_ids.append(tag.id)
        await self.tags.adjust_post_counts(tag_ids, 1)

    # Embeddings
    def _schedule_index(self, post: Post) -> None:
        if self.embedding_service is None or not post.is_identity:
            return
        self.background.submit(
            self.embedding_service.index_post(post),
            name=f"index-post-{post.id}",
            key=post.id,
            operation="index_post",
            identity_id=post.id,
        )

    async def reindex_post(self, post_id: Any) -> EmbeddingResult:
        """Re-embed the identity behind a post and wait for the outcome"""
        post_id = parse_post_id(post_id)
        async with DatabaseManager.transaction(self.db_name):
            post = await self.posts.find_by_id(post_id)
            if post is None:
                raise NotFoundError("Post not found")
            if not post.is_identity:
                post = await self.posts.find_by_id(resolve_identity(post))

        if self.embedding_service is None:
            return EmbeddingResult(
                success=False, post_id=post.id, error="Embedding service not configured"
            )
        return await self.embedding_service.index_post(post)

    async def reindex_all(self) -> BulkEmbeddingResult:
        async with DatabaseManager.transaction(self.db_name):
            identities = await self.posts.find_identities()

        if self.embedding_service is None:
            logger.warning("embeddings_disabled", operation="reindex_all")
            return BulkEmbeddingResult(
                total=len(identities),
                succeeded=0,
                failed=len(identities),
                results=[
                    EmbeddingResult(
                        success=False,
                        post_id=post.id,
                        error="Embedding service not configured",
                    )
                    for post in identities
                ],
            )
        return await self.embedding_service.bulk_index(identities)
