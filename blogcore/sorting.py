from enum import Enum

from pydantic import BaseModel, ConfigDict

from blogcore.entities import SortOrder
from blogcore.query_builder import QueryBuilder

DEFAULT_SORT = "createdAt,desc"

# Views live on the identity row; a translation sorts by its original's counter
SHARED_VIEWS_SQL = (
    "COALESCE((SELECT o.views FROM posts o WHERE o.id = posts.original_post_id), posts.views)"
)


class SortField(str, Enum):
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    VIEWS = "views"
    TITLE = "title"


# Trusted SQL for every sortable field. Client input never reaches ORDER BY directly.
SORT_COLUMNS: dict[SortField, str] = {
    SortField.CREATED_AT: "posts.created_at",
    SortField.UPDATED_AT: "posts.updated_at",
    SortField.VIEWS: SHARED_VIEWS_SQL,
    SortField.TITLE: "posts.title",
}


class PostSort(BaseModel):
    """A validated (field, direction) pair for post listings"""

    model_config = ConfigDict(frozen=True)

    field: SortField = SortField.CREATED_AT
    order: SortOrder = SortOrder.DESC


def apply_sort(builder: QueryBuilder, sort: PostSort | None) -> QueryBuilder:
    """Apply the sort, then id as a tie-breaker so pages never overlap."""
    sort = sort or PostSort()
    column = SORT_COLUMNS[sort.field]

    if sort.order == SortOrder.DESC:
        return builder.order_by_desc(column).order_by_desc("posts.id")
    return builder.order_by(column).order_by("posts.id")
