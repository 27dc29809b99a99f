"""
Immutable QueryBuilder for SELECT statements with asyncpg-style placeholders.
The goal is to produce SQL queries without execution.
"""

from typing import Any


class QueryBuilder:
    """
    Simple query builder for SELECT statements.

    Every method returns a new builder, so a partially built query can be
    shared between the page query and its count query.

    Usage:
        builder = QueryBuilder("posts")
        query, params = builder.where("locale", "en").order_by_desc("created_at").build()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None

    def _clone(self) -> "QueryBuilder":
        """Create a copy of the current QueryBuilder instance"""
        new_builder = QueryBuilder(self.table_name)
        new_builder.select_fields = self.select_fields
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_count = self.limit_count
        new_builder.offset_count = self.offset_count
        return new_builder

    def _next_placeholder(self) -> str:
        return f"${len(self.params) + 1}"

    def _add_condition(self, field: str, value: Any, operator: str) -> "QueryBuilder":
        new_builder = self._clone()

        # None compares with IS NULL / IS NOT NULL
        if value is None and operator == "=":
            condition = f"{field} IS NULL"
        elif value is None and operator in ("!=", "<>"):
            condition = f"{field} IS NOT NULL"
        else:
            condition = f"{field} {operator} {new_builder._next_placeholder()}"
            new_builder.params.append(value)

        new_builder.where_conditions.append(condition)
        return new_builder

    def _add_in_condition(
        self, field: str, values: Any | list[Any], is_not: bool = False
    ) -> "QueryBuilder":
        new_builder = self._clone()

        if not isinstance(values, list):
            values = [values]

        if not values:
            # x IN () is not valid SQL; keep the set semantics instead
            new_builder.where_conditions.append("TRUE" if is_not else "FALSE")
            return new_builder

        start_index = len(new_builder.params) + 1
        placeholders = ", ".join([f"${i + start_index}" for i in range(len(values))])
        not_keyword = "NOT " if is_not else ""
        new_builder.where_conditions.append(f"{field} {not_keyword}IN ({placeholders})")
        new_builder.params.extend(values)
        return new_builder

    def select(self, *fields: str) -> "QueryBuilder":
        """Set the SELECT fields; defaults to * when none is provided."""
        new_builder = self._clone()
        new_builder.select_fields = ", ".join(fields) if fields else "*"
        return new_builder

    def where(self, field: str, *args: Any) -> "QueryBuilder":
        """Add a WHERE condition, joined to the others with AND.

        Supports both of the following call styles:
        - where(field, value) -> operator defaults to '='
        - where(field, operator, value) -> explicit operator in the second place
        """
        if len(args) == 2:
            operator, value = args
            return self._add_condition(field, value, operator)
        if len(args) == 1:
            return self._add_condition(field, args[0], "=")
        raise TypeError("where() expects (field, value) or (field, operator, value)")

    def where_in(self, field: str, values: Any | list[Any]) -> "QueryBuilder":
        """Add a WHERE IN condition"""
        return self._add_in_condition(field, values, is_not=False)

    def where_not_in(self, field: str, values: Any | list[Any]) -> "QueryBuilder":
        """Add a WHERE NOT IN condition"""
        return self._add_in_condition(field, values, is_not=True)

    def where_raw(self, template: str, *values: Any) -> "QueryBuilder":
        """Add a hand-written condition.

        Each ``{}`` slot in the template is replaced by the next positional
        placeholder and bound to the matching value, e.g.
        ``where_raw("id IN (SELECT post_id FROM post_tags WHERE tag_id = {})", 3)``.
        Only trusted SQL belongs in the template.
        """
        if template.count("{}") != len(values):
            raise ValueError("where_raw() needs one value per {} slot")
        new_builder = self._clone()
        start_index = len(new_builder.params) + 1
        placeholders = [f"${start_index + i}" for i in range(len(values))]
        new_builder.where_conditions.append(template.format(*placeholders))
        new_builder.params.extend(values)
        return new_builder

    def order_by(self, field: str) -> "QueryBuilder":
        """Add ORDER BY ascending for a field. Chain to add multiple fields."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} ASC")
        return new_builder

    def order_by_desc(self, field: str) -> "QueryBuilder":
        """Add ORDER BY ... DESC on the given field. Can be chained."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} DESC")
        return new_builder

    def without_order(self) -> "QueryBuilder":
        """Drop ORDER BY, LIMIT and OFFSET (used to derive count queries)"""
        new_builder = self._clone()
        new_builder.order_by_parts = []
        new_builder.limit_count = None
        new_builder.offset_count = None
        return new_builder

    def limit(self, count: int) -> "QueryBuilder":
        """Set the LIMIT clause"""
        new_builder = self._clone()
        new_builder.limit_count = count
        return new_builder

    def offset(self, count: int) -> "QueryBuilder":
        """Set the OFFSET clause"""
        new_builder = self._clone()
        new_builder.offset_count = count
        return new_builder

    def paginate(self, page: int, size: int = 10) -> "QueryBuilder":
        """
        Set LIMIT and OFFSET for a zero-indexed page

        Args:
            page: Page number (0-based)
            size: Number of records per page (default: 10)
        """
        if page < 0:
            raise ValueError("Page number must be 0 or greater")
        if size < 1:
            raise ValueError("Page size must be 1 or greater")

        return self.limit(size).offset(page * size)

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query_parts = [f"SELECT {self.select_fields} FROM {self.table_name}"]

        if self.where_conditions:
            query_parts.append(f"WHERE {' AND '.join(self.where_conditions)}")

        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")

        if self.limit_count is not None:
            query_parts.append(f"LIMIT {self.limit_count}")

        if self.offset_count is not None:
            query_parts.append(f"OFFSET {self.offset_count}")

        return " ".join(query_parts), self.params

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query

    def __str__(self) -> str:
        query, params = self.build()
        return f"Query: {query}\nParams: {params}"
