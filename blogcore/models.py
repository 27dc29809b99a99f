"""Input and read models exchanged with the routing layer"""

from datetime import datetime
from typing import ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from blogcore.entities import PRIMARY_LOCALE, DisplayState, Locale, PostState

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
MAX_TAGS = 20

T = TypeVar("T")


class _Model(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True)


# Inputs
class PostInput(_Model):
    """Fields shared by post creation and update requests"""

    title: str
    content: str
    summary: str | None = None
    slug: str | None = Field(default=None, pattern=SLUG_PATTERN)
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    state: PostState

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be at least 1 characters")
        return value

    @field_validator("summary")
    @classmethod
    def _blank_summary_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("tags")
    @classmethod
    def _tags_not_blank(cls, value: list[str]) -> list[str]:
        for index, tag in enumerate(value):
            if not tag.strip():
                raise ValueError(f"tag at index {index} must be a non-empty string")
        # Keep first occurrence order; a post carries a tag once
        return list(dict.fromkeys(tag.strip() for tag in value))


class PostCreate(PostInput):
    locale: Locale = PRIMARY_LOCALE
    original_post_id: int | None = None
    created_at: datetime | None = None


class PostEdit(PostInput):
    pass


class CommentCreate(_Model):
    content: str = Field(max_length=500)
    author: str = Field(max_length=20)

    @field_validator("content")
    @classmethod
    def _content_length(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Content must be between 1 and 500 characters")
        return value

    @field_validator("author")
    @classmethod
    def _author_length(cls, value: str) -> str:
        if len(value.strip()) < 2:
            raise ValueError("Author must be between 2 and 20 characters")
        return value


# Read models
class RelatedPost(_Model):
    id: int
    slug: str
    title: str
    score: float
    locale: Locale = PRIMARY_LOCALE


class LocaleVariant(_Model):
    post_id: int
    locale: Locale
    slug: str


class PostListItem(_Model):
    id: int
    slug: str
    title: str
    summary: str | None
    tags: list[str]
    locale: Locale
    created_at: datetime
    updated_at: datetime
    views: int


class AdminPostListItem(PostListItem):
    state: DisplayState
    original_post_id: int | None
    has_translation: bool


class PostDetail(_Model):
    id: int
    slug: str
    title: str
    content: str
    summary: str | None
    tags: list[str]
    state: PostState
    locale: Locale
    original_post_id: int | None
    created_at: datetime
    updated_at: datetime
    views: int
    available_locales: list[LocaleVariant] = Field(default_factory=list)
    related_posts: list[RelatedPost] = Field(default_factory=list)


class PostRedirect(_Model):
    """Tells the caller to re-request the post under another slug/locale"""

    slug: str
    locale: Locale


class Page(BaseModel, Generic[T]):
    content: list[T]
    total_elements: int
    page_number: int
    page_size: int


class TagSummary(_Model):
    id: int
    name: str
    post_count: int
    created_at: datetime


class SitemapEntry(_Model):
    slug: str
    locale: Locale
    updated_at: datetime


class DeletedResult(_Model):
    id: int | UUID
    deleted: bool = True


class EmbeddingResult(_Model):
    success: bool
    post_id: int
    vector_id: str | None = None
    error: str | None = None


class BulkEmbeddingResult(_Model):
    total: int
    succeeded: int
    failed: int
    results: list[EmbeddingResult]


class TranslationResult(_Model):
    original_post_id: int
    translated_post: PostDetail
