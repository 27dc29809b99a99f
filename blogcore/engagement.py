"""Views and comments shared by every locale variant of a post.

Whatever variant a reader is on, counters and comment threads live on the
identity row.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog

from blogcore.comment_repository import CommentRepository
from blogcore.db_context import DatabaseManager
from blogcore.entities import Comment, Post
from blogcore.errors import NotFoundError
from blogcore.models import CommentCreate, DeletedResult
from blogcore.post_repository import PostRepository
from blogcore.translation_linker import TranslationLinker, resolve_identity
from blogcore.validation import parse_comment, parse_comment_id, parse_post_id

logger = structlog.get_logger(__name__)


class EngagementAggregator:
    def __init__(
        self,
        db_name: str = "default",
        posts: PostRepository | None = None,
        comments: CommentRepository | None = None,
    ):
        self.db_name = db_name
        self.posts = posts or PostRepository()
        self.comments = comments or CommentRepository()
        self.linker = TranslationLinker(self.posts)

    async def _published_variant(self, post_id: int) -> Post:
        post = await self.posts.find_published_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def increment_views(self, post_id: Any) -> int:
        """Add one view to the identity of a published variant; returns the shared count"""
        post_id = parse_post_id(post_id)
        async with DatabaseManager.transaction(self.db_name):
            variant = await self._published_variant(post_id)
            views = await self.posts.increment_views(resolve_identity(variant))
        if views is None:
            raise NotFoundError("Post not found")
        return views

    async def get_views(self, post_id: Any) -> int:
        post_id = parse_post_id(post_id)
        async with DatabaseManager.transaction(self.db_name):
            identity_id = await self.linker.identity_of(post_id)
            views = await self.posts.get_views(identity_id)
        if views is None:
            raise NotFoundError("Post not found")
        return views

    async def list_comments(self, post_id: Any) -> list[Comment]:
        """The identity's thread, oldest first"""
        post_id = parse_post_id(post_id)
        async with DatabaseManager.transaction(self.db_name):
            variant = await self._published_variant(post_id)
            return await self.comments.find_by_post_id(resolve_identity(variant))

    async def create_comment(
        self, post_id: Any, data: CommentCreate | dict[str, Any]
    ) -> Comment:
        """Store a comment on the identity, whichever variant it was written on"""
        post_id = parse_post_id(post_id)
        comment_data = parse_comment(data)
        async with DatabaseManager.transaction(self.db_name):
            variant = await self._published_variant(post_id)
            identity_id = resolve_identity(variant)
            comment = await self.comments.create(
                Comment(
                    id=uuid4(),
                    content=comment_data.content,
                    author_name=comment_data.author,
                    created_at=datetime.now(UTC),
                    post_id=identity_id,
                )
            )
        logger.info(
            "comment_created",
            comment_id=str(comment.id),
            post_id=post_id,
            identity_id=identity_id,
        )
        return comment

    async def delete_comment(self, comment_id: UUID | str) -> DeletedResult:
        comment_id = parse_comment_id(comment_id)
        async with DatabaseManager.transaction(self.db_name):
            if not await self.comments.delete(comment_id):
                raise NotFoundError("Comment not found")
        logger.info("comment_deleted", comment_id=str(comment_id))
        return DeletedResult(id=comment_id)
