"""Text embedding generators"""

from blogcore.embeddings.base import Embedder
from blogcore.embeddings.hashing import HashingEmbedder
from blogcore.embeddings.openai_embedder import OpenAIEmbedder

__all__ = ["Embedder", "HashingEmbedder", "OpenAIEmbedder"]
