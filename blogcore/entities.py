from datetime import datetime
from enum import Enum
from typing import ClassVar, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic.config import ConfigDict


T = TypeVar("T")


class Field(Generic[T]):
    """Type-safe column definition for schema classes.

    Usage:
        class PostColumns(SchemaBase):
            locale = Field[str]("locale")

        repo.where(PostColumns.locale, "en")
    """

    def __init__(self, column_name: str):
        self._column_name = column_name

    @property
    def column(self) -> str:
        """Return the underlying database column name."""
        return self._column_name

    def __str__(self) -> str:
        return self._column_name

    def __repr__(self) -> str:
        return f"Field({self._column_name})"


class SchemaBase:
    """Base class for column catalogues built from Field descriptors."""

    pass


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class PostState(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class DisplayState(str, Enum):
    """State shown in admin listings; scheduled = published with a future timestamp."""

    DRAFT = "draft"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"


class Locale(str, Enum):
    KO = "ko"
    EN = "en"


PRIMARY_LOCALE = Locale.KO
TRANSLATION_TARGETS = frozenset({Locale.EN})


class BaseEntity(BaseModel):
    """Base entity class for all database rows."""

    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True)
    id: int | None = None


class Post(BaseEntity):
    slug: str
    title: str
    content: str
    summary: str | None = None
    state: PostState = PostState.DRAFT
    locale: Locale = PRIMARY_LOCALE
    original_post_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    views: int = 0

    @property
    def is_identity(self) -> bool:
        return self.original_post_id is None

    @property
    def is_published(self) -> bool:
        return self.state == PostState.PUBLISHED

    def is_visible_at(self, now: datetime) -> bool:
        """Published and no longer scheduled"""
        return self.is_published and (self.created_at is None or self.created_at <= now)


class PostUpdate(BaseModel):
    """Columns a stored post row may change"""

    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True)

    slug: str | None = None
    title: str | None = None
    content: str | None = None
    summary: str | None = None
    state: PostState | None = None
    updated_at: datetime | None = None


class PostColumns(SchemaBase):
    id = Field[int]("id")
    slug = Field[str]("slug")
    title = Field[str]("title")
    state = Field[str]("state")
    locale = Field[str]("locale")
    original_post_id = Field[int]("original_post_id")
    created_at = Field[datetime]("created_at")
    updated_at = Field[datetime]("updated_at")
    views = Field[int]("views")


class Tag(BaseEntity):
    name: str
    created_at: datetime | None = None
    post_count: int = 0


class TagUpdate(BaseModel):
    name: str | None = None


class Comment(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True)

    id: UUID
    content: str
    author_name: str
    created_at: datetime
    post_id: int
    seq: int | None = None


class CommentUpdate(BaseModel):
    content: str | None = None
