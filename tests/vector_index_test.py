import pytest

from blogcore.embeddings import HashingEmbedder
from blogcore.vectors import FaissVectorIndex, InMemoryVectorIndex, VectorRecord


def record(vector_id: str, values: list[float], **metadata) -> VectorRecord:
    return VectorRecord(id=vector_id, values=values, metadata=metadata)


class TestInMemoryVectorIndex:
    @pytest.mark.asyncio
    async def test_query_ranks_by_cosine_similarity(self):
        index = InMemoryVectorIndex()
        await index.upsert(
            [
                record("a", [1.0, 0.0]),
                record("b", [0.7, 0.7]),
                record("c", [0.0, 1.0]),
            ]
        )

        matches = await index.query([1.0, 0.1], top_k=2)

        assert [match.id for match in matches] == ["a", "b"]
        assert matches[0].score > matches[1].score

    @pytest.mark.asyncio
    async def test_metadata_filter_is_equality(self):
        index = InMemoryVectorIndex()
        await index.upsert(
            [
                record("draft", [1.0, 0.0], state="draft"),
                record("live", [0.5, 0.5], state="published"),
            ]
        )

        matches = await index.query([1.0, 0.0], top_k=5, metadata_filter={"state": "published"})

        assert [match.id for match in matches] == ["live"]
        assert matches[0].metadata == {"state": "published"}

    @pytest.mark.asyncio
    async def test_upsert_replaces_existing_record(self):
        index = InMemoryVectorIndex()
        await index.upsert([record("a", [1.0, 0.0], title="old")])
        await index.upsert([record("a", [0.0, 1.0], title="new")])

        [stored] = await index.get_by_ids(["a", "missing"])

        assert len(index) == 1
        assert stored.values == [0.0, 1.0]
        assert stored.metadata["title"] == "new"

    @pytest.mark.asyncio
    async def test_delete_reports_existing_ids_only(self):
        index = InMemoryVectorIndex()
        await index.upsert([record("a", [1.0, 0.0])])

        assert await index.delete_by_ids(["a", "b"]) == 1
        assert "a" not in index

    @pytest.mark.asyncio
    async def test_dimension_mismatch_raises(self):
        index = InMemoryVectorIndex()
        await index.upsert([record("a", [1.0, 0.0, 0.0])])

        with pytest.raises(ValueError):
            await index.query([1.0, 0.0], top_k=1)

    @pytest.mark.asyncio
    async def test_empty_index_returns_no_matches(self):
        assert await InMemoryVectorIndex().query([1.0], top_k=3) == []



class TestFaissVectorIndex:
    @pytest.mark.asyncio
    async def test_query_ranks_by_cosine_similarity(self, tmp_path):
        index = FaissVectorIndex(tmp_path)
        await index.upsert(
            [
                record("a", [2.0, 0.0]),
                record("b", [0.7, 0.7]),
                record("c", [0.0, 1.0]),
            ]
        )

        matches = await index.query([1.0, 0.1], top_k=2)

        assert [match.id for match in matches] == ["a", "b"]
        assert matches[0].score == pytest.approx(0.995, abs=1e-3)

    @pytest.mark.asyncio
    async def test_metadata_filter_applies_before_top_k(self, tmp_path):
        index = FaissVectorIndex(tmp_path)
        await index.upsert(
            [
                record("draft", [1.0, 0.0], state="draft"),
                record("live", [0.5, 0.5], state="published"),
            ]
        )

        matches = await index.query([1.0, 0.0], top_k=1, metadata_filter={"state": "published"})

        assert [match.id for match in matches] == ["live"]

    @pytest.mark.asyncio
    async def test_records_survive_reopening(self, tmp_path):
        index = FaissVectorIndex(tmp_path)
        await index.upsert([record("a", [1.0, 0.0], title="old"), record("b", [0.0, 1.0])])
        await index.upsert([record("a", [0.0, 3.0], title="new")])
        await index.delete_by_ids(["b"])

        reopened = FaissVectorIndex(tmp_path)
        [stored] = await reopened.get_by_ids(["a", "b"])

        assert len(reopened) == 1
        assert "b" not in reopened
        assert stored.values == pytest.approx([0.0, 1.0])
        assert stored.metadata == {"title": "new"}
        assert [match.id for match in await reopened.query([0.0, 1.0], top_k=5)] == ["a"]

    @pytest.mark.asyncio
    async def test_delete_reports_existing_ids_only(self, tmp_path):
        index = FaissVectorIndex(tmp_path)
        await index.upsert([record("a", [1.0, 0.0])])

        assert await index.delete_by_ids(["a", "b"]) == 1
        assert await index.query([1.0, 0.0], top_k=3) == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch_raises(self, tmp_path):
        index = FaissVectorIndex(tmp_path)
        await index.upsert([record("a", [1.0, 0.0, 0.0])])

        with pytest.raises(ValueError):
            await index.upsert([record("b", [1.0, 0.0])])
        with pytest.raises(ValueError):
            await index.query([1.0, 0.0], top_k=1)

    @pytest.mark.asyncio
    async def test_fresh_directory_is_empty(self, tmp_path):
        index = FaissVectorIndex(tmp_path / "missing")

        assert len(index) == 0
        assert await index.query([1.0], top_k=3) == []
        assert await index.get_by_ids(["a"]) == []

class TestHashingEmbedder:
    @pytest.mark.asyncio
    async def test_vectors_are_deterministic_and_normalised(self):
        embedder = HashingEmbedder(dimensions=64)

        first = await embedder.embed("asyncpg connection pools")
        second = await embedder.embed("asyncpg connection pools")

        assert first == second
        assert len(first) == 64
        assert sum(value * value for value in first) == pytest.approx(1.0, rel=1e-5)

    @pytest.mark.asyncio
    async def test_shared_vocabulary_scores_higher(self):
        embedder = HashingEmbedder()
        index = InMemoryVectorIndex()
        await index.upsert(
            [
                record("db", await embedder.embed("postgres transactions and connection pools")),
                record("food", await embedder.embed("kimchi stew recipe with tofu")),
            ]
        )

        matches = await index.query(await embedder.embed("postgres connection pools"), top_k=2)

        assert matches[0].id == "db"
