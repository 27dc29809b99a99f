"""
In-memory vector index.

Cosine similarity over numpy arrays. Used for local runs, tests and as a
stand-in when no hosted index is configured.
"""

from typing import Any

import numpy as np

from blogcore.vectors.base import VectorIndex, VectorMatch, VectorRecord


def _matches(metadata: dict[str, Any], metadata_filter: dict[str, Any] | None) -> bool:
    if not metadata_filter:
        return True
    return all(metadata.get(key) == value for key, value in metadata_filter.items())


class InMemoryVectorIndex(VectorIndex):
    """Dictionary-backed index with exhaustive cosine search."""

    def __init__(self) -> None:
        self._vectors: dict[str, np.ndarray] = {}
        self._metadata: dict[str, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, vector_id: str) -> bool:
        return vector_id in self._vectors

    async def upsert(self, records: list[VectorRecord]) -> int:
        for record in records:
            self._vectors[record.id] = np.asarray(record.values, dtype=np.float32)
            self._metadata[record.id] = dict(record.metadata)
        return len(records)

    async def get_by_ids(self, ids: list[str]) -> list[VectorRecord]:
        return [
            VectorRecord(
                id=vector_id,
                values=self._vectors[vector_id].tolist(),
                metadata=dict(self._metadata[vector_id]),
            )
            for vector_id in ids
            if vector_id in self._vectors
        ]

    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        candidates = [
            vector_id
            for vector_id, metadata in self._metadata.items()
            if _matches(metadata, metadata_filter)
        ]
        if not candidates or top_k < 1:
            return []

        query = np.asarray(vector, dtype=np.float32)
        matrix = np.stack([self._vectors[vector_id] for vector_id in candidates])
        if matrix.shape[1] != query.shape[0]:
            raise ValueError(
                f"Vector dimension {query.shape[0]} does not match index dimension {matrix.shape[1]}"
            )

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)

        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            VectorMatch(
                id=candidates[i],
                score=float(scores[i]),
                metadata=dict(self._metadata[candidates[i]]),
            )
            for i in order
        ]

    async def delete_by_ids(self, ids: list[str]) -> int:
        deleted = 0
        for vector_id in ids:
            if self._vectors.pop(vector_id, None) is not None:
                self._metadata.pop(vector_id, None)
                deleted += 1
        return deleted
