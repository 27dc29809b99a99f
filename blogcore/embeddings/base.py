"""Interface for embedding generators."""

from abc import ABC, abstractmethod


class Embedder(ABC):
    """Maps a text onto a fixed-length float vector."""

    dimensions: int

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector of one text."""
        ...
