"""Links between an identity post and its locale variants.

An identity post has ``original_post_id = None``; a translation points at its
identity and never at another translation. Every piece of shared state
(views, comments, embeddings) is keyed by the identity id, which
``resolve_identity`` is the single source of.
"""

from typing import TYPE_CHECKING

from blogcore.entities import Post
from blogcore.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from blogcore.post_repository import PostRepository


def resolve_identity(post: Post) -> int:
    """Identity id of any post row: its original's id, or its own"""
    if post.original_post_id is not None:
        return post.original_post_id
    if post.id is None:
        raise ValueError("Post has not been stored yet")
    return post.id


class TranslationLinker:
    """Lookups over the original/translation relationship.

    Must be used inside ``DatabaseManager.transaction``.
    """

    def __init__(self, posts: "PostRepository"):
        self.posts = posts

    async def identity_of(self, post_id: int) -> int:
        post = await self.posts.find_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return resolve_identity(post)

    async def find_translation(self, identity_id: int, locale: str) -> Post | None:
        return await self.posts.find_translation(identity_id, locale)

    async def list_variants(self, identity_id: int) -> list[Post]:
        """Identity first, then its translations by locale"""
        return await self.posts.find_variants(identity_id)

    async def find_variant(self, identity_id: int, locale: str) -> Post | None:
        """The variant of an identity in a locale, the identity itself included"""
        for variant in await self.list_variants(identity_id):
            if variant.locale == locale:
                return variant
        return None

    async def ensure_linkable(self, original_post_id: int, locale: str) -> Post:
        """Check that a new translation may point at this post in this locale.

        Raises:
            NotFoundError: the original does not exist
            ValidationError: the original is itself a translation or shares the locale
            ConflictError: the (identity, locale) pair already has a translation
        """
        original = await self.posts.find_by_id(original_post_id)
        if original is None:
            raise NotFoundError("Original post not found")
        if not original.is_identity:
            raise ValidationError("Translations must reference an original post")
        if original.locale == locale:
            raise ValidationError("Translation locale must differ from the original's")
        if await self.find_translation(original_post_id, locale) is not None:
            raise ConflictError("Translation already exists")
        return original
