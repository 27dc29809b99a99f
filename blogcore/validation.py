"""Input validation run before any store access"""

from typing import Any
from uuid import UUID

import pydantic

from blogcore.entities import Locale, SortOrder
from blogcore.errors import ValidationError
from blogcore.models import CommentCreate, PostCreate, PostEdit
from blogcore.sorting import DEFAULT_SORT, PostSort, SortField

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100


def validate_pagination(page: Any, size: Any) -> tuple[int, int]:
    """Check a zero-indexed page number and a page size in [1, 100]"""
    problems = []
    if not isinstance(page, int) or isinstance(page, bool) or page < 0:
        problems.append("Page must be a non-negative integer")
    if (
        not isinstance(size, int)
        or isinstance(size, bool)
        or not MIN_PAGE_SIZE <= size <= MAX_PAGE_SIZE
    ):
        problems.append(f"Size must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}")
    if problems:
        raise ValidationError.from_problems(problems)
    return page, size


def parse_sort(sort: str | None = DEFAULT_SORT) -> PostSort:
    """Parse ``"field,direction"`` against the sortable field allow-list.

    The direction defaults to descending and is case-insensitive.
    """
    if sort is None:
        sort = DEFAULT_SORT
    if not isinstance(sort, str) or not sort.strip():
        raise ValidationError("Sort parameter must be a non-empty string")

    field_name, _, direction = sort.partition(",")
    direction = (direction or "desc").strip().lower()

    problems = []
    allowed = [field.value for field in SortField]
    if field_name.strip() not in allowed:
        problems.append(f"Sort field must be one of: {', '.join(allowed)}")
    if direction not in ("asc", "desc"):
        problems.append('Sort direction must be "asc" or "desc"')
    if problems:
        raise ValidationError.from_problems(problems)

    return PostSort(
        field=SortField(field_name.strip()),
        order=SortOrder.ASC if direction == "asc" else SortOrder.DESC,
    )


def _problems(exc: pydantic.ValidationError) -> list[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"].removeprefix("Value error, ")
        problems.append(f"{location}: {message}" if location else message)
    return problems


def parse_post_create(data: PostCreate | dict[str, Any]) -> PostCreate:
    if isinstance(data, PostCreate):
        return data
    try:
        return PostCreate.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_problems(_problems(exc)) from exc


def parse_post_edit(data: PostEdit | dict[str, Any]) -> PostEdit:
    if isinstance(data, PostEdit):
        return data
    try:
        return PostEdit.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_problems(_problems(exc)) from exc


def parse_comment(data: CommentCreate | dict[str, Any]) -> CommentCreate:
    if isinstance(data, CommentCreate):
        return data
    try:
        return CommentCreate.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_problems(_problems(exc)) from exc


def is_decimal(value: str) -> bool:
    """ASCII digits only, so "²" is not a post id"""
    value = value.strip()
    return value.isascii() and value.isdigit()


def parse_post_id(value: Any) -> int:
    """Accept an int or a decimal string"""
    if isinstance(value, bool):
        raise ValidationError("Invalid post ID")
    if isinstance(value, int):
        post_id = value
    elif isinstance(value, str) and is_decimal(value):
        post_id = int(value.strip())
    else:
        raise ValidationError("Invalid post ID")
    if post_id < 1:
        raise ValidationError("Invalid post ID")
    return post_id


def parse_comment_id(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError("Invalid comment ID format") from exc


def parse_locale(value: Any) -> str:
    try:
        return Locale(value).value
    except ValueError as exc:
        allowed = ", ".join(locale.value for locale in Locale)
        raise ValidationError(f"Locale must be one of: {allowed}") from exc
