"""Interface for vector indexes holding one embedding per identity post.

Backends are external services, so every operation is a coroutine and may
raise whatever the transport raises; callers treat failures as soft.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class VectorRecord(BaseModel):
    id: str
    values: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)


class VectorMatch(BaseModel):
    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class VectorIndex(ABC):
    """Abstract vector index."""

    @abstractmethod
    async def upsert(self, records: list[VectorRecord]) -> int:
        """Insert or replace records by id and return how many were written."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_ids(self, ids: list[str]) -> list[VectorRecord]:
        """Return the stored records for the ids that exist."""
        raise NotImplementedError

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Return up to top_k nearest records, best score first.

        Args:
            vector: Query vector.
            top_k: Maximum number of matches.
            metadata_filter: Equality constraints every match's metadata must satisfy.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete_by_ids(self, ids: list[str]) -> int:
        """Delete records and return how many existed."""
        raise NotImplementedError
