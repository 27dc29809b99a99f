"""Deterministic embedder for local runs and tests.

Each lowercase word token is hashed into one of ``dimensions`` buckets with
a pseudo-random sign; the bucket counts are L2-normalised. Texts sharing
vocabulary end up close under cosine similarity, with no model download or
network access.
"""

import hashlib
import re

import numpy as np

from blogcore.embeddings.base import Embedder

_TOKEN = re.compile(r"\w+")


class HashingEmbedder(Embedder):
    def __init__(self, dimensions: int = 256):
        if dimensions < 2:
            raise ValueError("dimensions must be at least 2")
        self.dimensions = dimensions

    def _bucket(self, token: str) -> tuple[int, float]:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "big")
        sign = 1.0 if value & 1 else -1.0
        return (value >> 1) % self.dimensions, sign

    async def embed(self, text: str) -> list[float]:
        vector = np.zeros(self.dimensions, dtype=np.float32)
        for token in _TOKEN.findall(text.lower()):
            index, sign = self._bucket(token)
            vector[index] += sign
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()
