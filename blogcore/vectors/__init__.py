"""Vector index abstraction and backends"""

from blogcore.vectors.base import VectorIndex, VectorMatch, VectorRecord
from blogcore.vectors.faiss_store import FaissVectorIndex
from blogcore.vectors.memory import InMemoryVectorIndex

__all__ = ["VectorIndex", "VectorMatch", "VectorRecord", "FaissVectorIndex", "InMemoryVectorIndex"]
