"""Repository class"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeAlias, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from blogcore.database_operations import DatabaseOperations
from blogcore.query_builder import QueryBuilder

EntityId: TypeAlias = int | UUID

T = TypeVar("T", bound=BaseModel)
U = TypeVar("U", bound=BaseModel)


class RepositoryConfig(BaseModel):
    """Configuration options for Repository"""

    db_schema: str | None = Field(default=None, description="Database schema name")
    generated_columns: tuple[str, ...] = Field(
        default=("id",),
        description="Columns the database fills in when the entity leaves them unset",
    )


class Repository(Generic[T, U]):
    """Fluent repository over a single table.

    Type Parameters:
        T: Row entity (what queries return)
        U: Update model type (only explicitly set fields are written)
    """

    def __init__(
        self,
        entity_class: type[T],
        update_class: type[U] | None = None,
        table_name: str | None = None,
        config: RepositoryConfig | None = None,
    ):
        if entity_class is None:
            raise ValueError("entity_class is required")
        if table_name is None:
            raise ValueError("table_name is required")
        if update_class is None:
            raise ValueError("update_class is required")

        self.entity_class = entity_class
        self.update_class = update_class
        self.table_name = table_name
        self.config = config or RepositoryConfig()
        self._qualified_table_name = (
            f"{self.config.db_schema}.{table_name}"
            if self.config.db_schema
            else table_name
        )
        self._query_builder: QueryBuilder | None = None

        schema_fields = entity_class.model_fields
        self._column_names = set(schema_fields.keys())
        self._has_created_at = "created_at" in schema_fields
        self._has_updated_at = "updated_at" in schema_fields

        self.db_ops = DatabaseOperations()

    @property
    def qualified_table_name(self) -> str:
        return self._qualified_table_name

    def map_row(self, row: Any) -> T:
        """Map a database row onto the entity class, ignoring computed columns"""
        data = {k: v for k, v in dict(row).items() if k in self._column_names}
        return self.entity_class(**data)

    def map_rows(self, rows: list[Any]) -> list[T]:
        return [self.map_row(row) for row in rows]

    def _get_or_create_query_builder(self) -> QueryBuilder:
        if self._query_builder is None:
            return QueryBuilder(self._qualified_table_name)
        return self._query_builder

    def _clone_with_query_builder(self, query_builder: QueryBuilder):
        """Create a shallow copy of this repository carrying the given query builder"""
        new_repo = object.__new__(type(self))
        new_repo.__dict__.update(self.__dict__)
        new_repo._query_builder = query_builder
        return new_repo

    def _apply_automatic_fields(
        self, data: dict[str, Any], is_create: bool = True
    ) -> dict[str, Any]:
        """Fill created_at / updated_at when the schema has them and the caller did not"""
        current_time = datetime.now(UTC)

        if is_create and self._has_created_at and data.get("created_at") is None:
            data["created_at"] = current_time
        if self._has_updated_at and data.get("updated_at") is None:
            data["updated_at"] = current_time

        return data

    # Fluent query methods that return a new repository instance
    def select(self, *fields: str):
        """Set the SELECT fields; defaults to * when none is provided."""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().select(*fields)
        )

    def where(self, field: Any, *args: Any):
        """Add a WHERE condition: where(field, value) or where(field, operator, value)"""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().where(str(field), *args)
        )

    def where_raw(self, template: str, *values: Any):
        """Add a trusted SQL condition with {} slots for bound values"""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().where_raw(template, *values)
        )

    def order_by(self, field: Any):
        """Add ORDER BY ... ASC for a field. Can be chained."""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().order_by(str(field))
        )

    def order_by_desc(self, field: Any):
        """Add ORDER BY ... DESC for a field. Can be chained."""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().order_by_desc(str(field))
        )

    def paginate(self, page: int, size: int = 10):
        """Set zero-indexed pagination parameters"""
        return self._clone_with_query_builder(
            self._get_or_create_query_builder().paginate(page, size)
        )

    # Execution methods for fluent queries
    async def get(self) -> list[T]:
        """Execute the query and return all matching entities"""
        query, params = self._get_or_create_query_builder().build()
        rows = await self.db_ops.fetch_all(query, params)
        return self.map_rows(rows)

    async def get_rows(self) -> list[dict[str, Any]]:
        """Execute the query and return raw rows (for computed select lists)"""
        query, params = self._get_or_create_query_builder().build()
        rows = await self.db_ops.fetch_all(query, params)
        return [dict(row) for row in rows]

    async def first(self) -> T | None:
        """Execute the query and return the first matching entity"""
        query, params = self._get_or_create_query_builder().limit(1).build()
        row = await self.db_ops.fetch_one(query, params)
        if row:
            return self.map_row(row)
        return None

    async def count(self) -> int:
        """Count matching records; ORDER BY / LIMIT / OFFSET are ignored"""
        count_builder = (
            self._get_or_create_query_builder().without_order().select("COUNT(*)")
        )
        query, params = count_builder.build()
        result = await self.db_ops.fetch_value(query, params)
        return result or 0

    async def exists(self) -> bool:
        """Check if any records match the query"""
        return await self.count() > 0

    def to_sql(self) -> str:
        """Return the SQL query string for debugging"""
        return self._get_or_create_query_builder().to_sql()

    # CRUD operations
    async def find_by_id(self, entity_id: EntityId) -> T | None:
        """Find entity by ID using fluent interface"""
        return await self.where("id", entity_id).first()

    async def create(self, entity: T) -> T:
        """Insert an entity and return the stored row (with generated columns)"""
        fields = entity.model_dump()
        fields = self._apply_automatic_fields(fields, is_create=True)
        fields = {
            k: v
            for k, v in fields.items()
            if k in self._column_names
            and not (k in self.config.generated_columns and v is None)
        }

        columns = ", ".join(fields.keys())
        values = list(fields.values())
        placeholders = ", ".join([f"${i + 1}" for i in range(len(values))])

        row = await self.db_ops.fetch_one(
            f"INSERT INTO {self._qualified_table_name} ({columns}) "
            f"VALUES ({placeholders}) RETURNING *",
            values,
        )
        return self.map_row(row)

    async def update(self, entity_id: EntityId, update_data: U) -> T | None:
        """Update entity and return the updated version, or None if it does not exist"""
        # exclude_unset keeps explicit None values (e.g. clearing a summary)
        update_dict = update_data.model_dump(exclude_unset=True)
        update_dict = self._apply_automatic_fields(update_dict, is_create=False)

        if not update_dict:
            return await self.find_by_id(entity_id)

        set_clause = ", ".join(
            [f"{k} = ${i + 2}" for i, k in enumerate(update_dict.keys())]
        )
        values = [entity_id, *update_dict.values()]

        row = await self.db_ops.fetch_one(
            f"UPDATE {self._qualified_table_name} SET {set_clause} "
            f"WHERE id = $1 RETURNING *",
            values,
        )
        return self.map_row(row) if row else None

    async def delete(self, entity_id: EntityId) -> bool:
        """Delete entity by ID; returns False when nothing was deleted"""
        result = await self.db_ops.execute_query(
            f"DELETE FROM {self._qualified_table_name} WHERE id = $1",
            [entity_id],
        )
        return result != "DELETE 0"
