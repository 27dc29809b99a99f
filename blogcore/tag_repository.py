from collections import Counter
from datetime import UTC, datetime

from blogcore.entities import PostState, Tag, TagUpdate
from blogcore.repository import Repository


class TagRepository(Repository[Tag, TagUpdate]):
    """Tags, the post_tags join table and the denormalized post_count"""

    def __init__(self):
        super().__init__(
            entity_class=Tag,
            update_class=TagUpdate,
            table_name="tags",
        )

    async def find_by_name(self, name: str) -> Tag | None:
        return await self.where("name", name).first()

    async def get_or_create(self, name: str) -> Tag:
        # The no-op update makes RETURNING yield the existing row on conflict
        row = await self.db_ops.fetch_one(
            f"INSERT INTO {self.qualified_table_name} (name, created_at, post_count) "
            "VALUES ($1, $2, 0) "
            "ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name RETURNING *",
            [name, datetime.now(UTC)],
        )
        return self.map_row(row)

    async def link(self, post_id: int, tag_id: int) -> None:
        await self.db_ops.execute_query(
            "INSERT INTO post_tags (post_id, tag_id) VALUES ($1, $2) "
            "ON CONFLICT DO NOTHING",
            [post_id, tag_id],
        )

    async def unlink_all(self, post_id: int) -> list[int]:
        """Remove every tag link of a post and return the ids that were linked"""
        rows = await self.db_ops.fetch_all(
            "DELETE FROM post_tags WHERE post_id = $1 RETURNING tag_id",
            [post_id],
        )
        return [row["tag_id"] for row in rows]

    async def tag_ids_for_posts(self, post_ids: list[int]) -> list[int]:
        """Tag ids linked to the given posts, one entry per link"""
        if not post_ids:
            return []
        rows = await self.db_ops.fetch_all(
            "SELECT tag_id FROM post_tags WHERE post_id = ANY($1::bigint[])",
            [post_ids],
        )
        return [row["tag_id"] for row in rows]

    async def adjust_post_counts(self, tag_ids: list[int], delta: int) -> None:
        """Move each tag's post_count by delta per occurrence, never below zero"""
        for tag_id, occurrences in Counter(tag_ids).items():
            await self.db_ops.execute_query(
                f"UPDATE {self.qualified_table_name} "
                "SET post_count = GREATEST(post_count + $2, 0) WHERE id = $1",
                [tag_id, delta * occurrences],
            )

    async def names_for_post(self, post_id: int) -> list[str]:
        return (await self.names_for_posts([post_id])).get(post_id, [])

    async def names_for_posts(self, post_ids: list[int]) -> dict[int, list[str]]:
        if not post_ids:
            return {}
        rows = await self.db_ops.fetch_all(
            "SELECT pt.post_id, t.name FROM tags t "
            "JOIN post_tags pt ON pt.tag_id = t.id "
            "WHERE pt.post_id = ANY($1::bigint[]) "
            "ORDER BY pt.post_id, t.name",
            [post_ids],
        )
        tags_by_post: dict[int, list[str]] = {}
        for row in rows:
            tags_by_post.setdefault(row["post_id"], []).append(row["name"])
        return tags_by_post

    async def list_active(self) -> list[Tag]:
        return await self.where("post_count", ">", 0).order_by("name").get()

    async def list_active_for_locale(self, locale: str, now: datetime) -> list[Tag]:
        """Tags counted over published, visible posts of one locale"""
        rows = await self.db_ops.fetch_all(
            "SELECT t.id, t.name, t.created_at, COUNT(p.id)::int AS post_count "
            "FROM tags t "
            "JOIN post_tags pt ON pt.tag_id = t.id "
            "JOIN posts p ON p.id = pt.post_id "
            "WHERE p.locale = $1 AND p.state = $2 AND p.created_at <= $3 "
            "GROUP BY t.id, t.name, t.created_at "
            "ORDER BY t.name",
            [locale, PostState.PUBLISHED.value, now],
        )
        return self.map_rows(rows)
