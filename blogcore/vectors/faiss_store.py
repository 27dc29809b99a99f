"""
FAISS-backed vector index persisted to disk.

Vectors are L2-normalised before they go into an ``IndexFlatIP`` so inner
product equals cosine similarity. Layout under ``data_dir``:
``index.faiss`` (ids mapped with ``IndexIDMap2``) and ``records.json``
(string id to faiss id, metadata). Every write snapshots both files with an
atomic rename.
"""

import json
import os
from pathlib import Path
from typing import Any

import faiss
import numpy as np

from blogcore.vectors.base import VectorIndex, VectorMatch, VectorRecord
from blogcore.vectors.memory import _matches


def _normalized(values: list[list[float]]) -> np.ndarray:
    matrix = np.asarray(values, dtype=np.float32)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    return np.divide(matrix, norms, out=np.zeros_like(matrix), where=norms > 0)


class FaissVectorIndex(VectorIndex):
    """Exhaustive cosine search that survives restarts.

    ``get_by_ids`` returns the stored unit vectors, not the raw input.
    """

    def __init__(self, data_dir: str | os.PathLike[str]) -> None:
        self._dir = Path(data_dir)
        self._index: faiss.IndexIDMap2 | None = None
        self._ids: dict[str, int] = {}
        self._metadata: dict[str, dict[str, Any]] = {}
        self._next_id = 0
        self._load()

    @property
    def _index_path(self) -> Path:
        return self._dir / "index.faiss"

    @property
    def _records_path(self) -> Path:
        return self._dir / "records.json"

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, vector_id: str) -> bool:
        return vector_id in self._ids

    def _load(self) -> None:
        if not self._records_path.exists():
            return
        with open(self._records_path, encoding="utf-8") as f:
            raw = json.load(f)
        self._ids = raw["ids"]
        self._metadata = raw["metadata"]
        self._next_id = raw["next_id"]
        if self._index_path.exists():
            self._index = faiss.read_index(str(self._index_path))

    def _save(self) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        if self._index is not None:
            tmp_index = self._index_path.with_suffix(".faiss.tmp")
            faiss.write_index(self._index, str(tmp_index))
            os.replace(tmp_index, self._index_path)
        tmp_records = self._records_path.with_suffix(".json.tmp")
        with open(tmp_records, "w", encoding="utf-8") as f:
            json.dump(
                {"ids": self._ids, "metadata": self._metadata, "next_id": self._next_id},
                f,
            )
        os.replace(tmp_records, self._records_path)

    def _check_dimension(self, dim: int) -> None:
        if self._index is not None and self._index.d != dim:
            raise ValueError(
                f"Vector dimension {dim} does not match index dimension {self._index.d}"
            )

    async def upsert(self, records: list[VectorRecord]) -> int:
        if not records:
            return 0
        latest = {record.id: record for record in records}
        matrix = _normalized([record.values for record in latest.values()])
        dim = matrix.shape[1]
        self._check_dimension(dim)
        if self._index is None:
            self._index = faiss.IndexIDMap2(faiss.IndexFlatIP(dim))

        replaced = [self._ids[vid] for vid in latest if vid in self._ids]
        if replaced:
            self._index.remove_ids(np.asarray(replaced, dtype=np.int64))

        faiss_ids = []
        for vid, record in latest.items():
            if vid not in self._ids:
                self._ids[vid] = self._next_id
                self._next_id += 1
            faiss_ids.append(self._ids[vid])
            self._metadata[vid] = dict(record.metadata)
        self._index.add_with_ids(matrix, np.asarray(faiss_ids, dtype=np.int64))
        self._save()
        return len(records)

    async def get_by_ids(self, ids: list[str]) -> list[VectorRecord]:
        if self._index is None:
            return []
        return [
            VectorRecord(
                id=vid,
                values=self._index.reconstruct(self._ids[vid]).tolist(),
                metadata=dict(self._metadata[vid]),
            )
            for vid in ids
            if vid in self._ids
        ]

    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        if self._index is None or self._index.ntotal == 0 or top_k < 1:
            return []
        query = _normalized([vector])
        self._check_dimension(query.shape[1])

        # Metadata lives outside faiss, so rank everything and filter afterwards
        scores, faiss_ids = self._index.search(query, self._index.ntotal)
        by_faiss_id = {faiss_id: vid for vid, faiss_id in self._ids.items()}
        matches: list[VectorMatch] = []
        for score, faiss_id in zip(scores[0], faiss_ids[0], strict=True):
            vid = by_faiss_id.get(int(faiss_id))
            if vid is None or not _matches(self._metadata[vid], metadata_filter):
                continue
            matches.append(
                VectorMatch(id=vid, score=float(score), metadata=dict(self._metadata[vid]))
            )
            if len(matches) == top_k:
                break
        return matches

    async def delete_by_ids(self, ids: list[str]) -> int:
        doomed = [vid for vid in ids if vid in self._ids]
        if not doomed:
            return 0
        if self._index is not None:
            self._index.remove_ids(
                np.asarray([self._ids[vid] for vid in doomed], dtype=np.int64)
            )
        for vid in doomed:
            del self._ids[vid]
            self._metadata.pop(vid, None)
        self._save()
        return len(doomed)
