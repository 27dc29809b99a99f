"""
Tests for the QueryBuilder class.
"""

import pytest

from blogcore.entities import PostColumns, SortOrder
from blogcore.query_builder import QueryBuilder
from blogcore.sorting import SHARED_VIEWS_SQL, PostSort, SortField, apply_sort


class TestQueryBuilder:
    """Test cases for QueryBuilder functionality"""

    def test_basic_select_all(self):
        query, params = QueryBuilder("posts").build()

        assert query == "SELECT * FROM posts"
        assert params == []

    def test_select_specific_fields(self):
        query, params = QueryBuilder("posts").select("id", "slug").build()

        assert query == "SELECT id, slug FROM posts"
        assert params == []

    def test_where_conditions_are_joined_with_and(self):
        query, params = (
            QueryBuilder("posts").where("locale", "en").where("state", "published").build()
        )

        assert query == "SELECT * FROM posts WHERE locale = $1 AND state = $2"
        assert params == ["en", "published"]

    def test_where_with_explicit_operator(self):
        query, params = QueryBuilder("posts").where("views", ">=", 10).build()

        assert query == "SELECT * FROM posts WHERE views >= $1"
        assert params == [10]

    def test_where_accepts_field_descriptors(self):
        query, _ = QueryBuilder("posts").where(str(PostColumns.locale), "ko").build()

        assert query == "SELECT * FROM posts WHERE locale = $1"

    def test_where_none_becomes_is_null(self):
        query, params = (
            QueryBuilder("posts")
            .where("original_post_id", None)
            .where("summary", "!=", None)
            .build()
        )

        assert query == "SELECT * FROM posts WHERE original_post_id IS NULL AND summary IS NOT NULL"
        assert params == []

    def test_where_with_wrong_arity_raises(self):
        with pytest.raises(TypeError):
            QueryBuilder("posts").where("id")

    def test_where_in_numbers_placeholders_after_existing_params(self):
        query, params = QueryBuilder("posts").where("locale", "en").where_in("id", [1, 2]).build()

        assert query == "SELECT * FROM posts WHERE locale = $1 AND id IN ($2, $3)"
        assert params == ["en", 1, 2]

    def test_empty_where_in_matches_nothing(self):
        assert QueryBuilder("posts").where_in("id", []).to_sql() == "SELECT * FROM posts WHERE FALSE"
        assert QueryBuilder("posts").where_not_in("id", []).to_sql() == "SELECT * FROM posts WHERE TRUE"

    def test_where_raw_binds_each_slot(self):
        query, params = (
            QueryBuilder("posts")
            .where("state", "published")
            .where_raw("(posts.id = {} OR posts.original_post_id = {})", 7, 7)
            .build()
        )

        assert query == (
            "SELECT * FROM posts WHERE state = $1 "
            "AND (posts.id = $2 OR posts.original_post_id = $3)"
        )
        assert params == ["published", 7, 7]

    def test_where_raw_rejects_slot_mismatch(self):
        with pytest.raises(ValueError):
            QueryBuilder("posts").where_raw("id = {}")

    def test_builder_is_immutable(self):
        base = QueryBuilder("posts").where("locale", "ko")
        base.where("state", "draft")

        assert base.build() == ("SELECT * FROM posts WHERE locale = $1", ["ko"])

    def test_without_order_keeps_filters_only(self):
        builder = QueryBuilder("posts").where("locale", "ko").order_by_desc("created_at").paginate(2, 5)
        query, params = builder.without_order().select("COUNT(*)").build()

        assert query == "SELECT COUNT(*) FROM posts WHERE locale = $1"
        assert params == ["ko"]


class TestPagination:
    def test_paginate_is_zero_indexed(self):
        assert QueryBuilder("posts").paginate(0, 10).to_sql() == "SELECT * FROM posts LIMIT 10 OFFSET 0"
        assert QueryBuilder("posts").paginate(1, 5).to_sql() == "SELECT * FROM posts LIMIT 5 OFFSET 5"

    def test_pagination_with_where_and_order(self):
        query, params = (
            QueryBuilder("posts")
            .where("locale", "en")
            .order_by_desc("created_at")
            .paginate(2, 20)
            .build()
        )

        assert query == "SELECT * FROM posts WHERE locale = $1 ORDER BY created_at DESC LIMIT 20 OFFSET 40"
        assert params == ["en"]

    @pytest.mark.parametrize("page, size", [(-1, 10), (0, 0)])
    def test_invalid_pagination_raises(self, page, size):
        with pytest.raises(ValueError):
            QueryBuilder("posts").paginate(page, size)


class TestApplySort:
    def test_default_sort_is_newest_first_with_id_tiebreak(self):
        query = apply_sort(QueryBuilder("posts"), None).to_sql()

        assert query == "SELECT * FROM posts ORDER BY posts.created_at DESC, posts.id DESC"

    def test_ascending_title(self):
        sort = PostSort(field=SortField.TITLE, order=SortOrder.ASC)

        assert apply_sort(QueryBuilder("posts"), sort).to_sql() == (
            "SELECT * FROM posts ORDER BY posts.title ASC, posts.id ASC"
        )

    def test_views_sort_uses_shared_counter(self):
        sort = PostSort(field=SortField.VIEWS, order=SortOrder.DESC)

        assert SHARED_VIEWS_SQL in apply_sort(QueryBuilder("posts"), sort).to_sql()
