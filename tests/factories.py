"""Shared builders and fakes for the test suite."""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from prometheus_client import REGISTRY

from blogcore.ai_generation import TextGenerator
from blogcore.embeddings.base import Embedder
from blogcore.models import PostDetail
from blogcore.post_service import ContentService
from blogcore.vectors.base import VectorIndex, VectorMatch, VectorRecord

TEST_DB = "test_db"


def past(days: int = 1) -> datetime:
    return datetime.now(UTC) - timedelta(days=days)


def future(days: int = 1) -> datetime:
    return datetime.now(UTC) + timedelta(days=days)


def post_data(title: str = "Hello World", **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "title": title,
        "content": f"Body of {title}",
        "state": "published",
        "created_at": past(),
    }
    data.update(overrides)
    return data


async def create_post(service: ContentService, title: str = "Hello World", **overrides: Any) -> PostDetail:
    return await service.create_post(post_data(title, **overrides))


async def create_translation(
    service: ContentService, original: PostDetail, **overrides: Any
) -> PostDetail:
    data = post_data(
        f"{original.title} (en)",
        slug=original.slug,
        locale="en",
        original_post_id=original.id,
        created_at=original.created_at,
    )
    data.update(overrides)
    return await service.create_post(data)


class FakeTextGenerator(TextGenerator):
    """Returns canned replies and records every call."""

    def __init__(self, replies: dict[str, str] | None = None, default: str = "translated"):
        self.replies = replies or {}
        self.default = default
        self.calls: list[tuple[str, str, int, bool]] = []

    async def generate(
        self, system: str, prompt: str, max_tokens: int, json_output: bool = False
    ) -> str:
        self.calls.append((system, prompt, max_tokens, json_output))
        return self.replies.get(prompt, self.default)


class FlakyEmbedder(Embedder):
    """Fails a set number of times before answering."""

    dimensions = 3

    def __init__(self, failures: int, vector: list[float] | None = None):
        self.failures = failures
        self.vector = vector or [1.0, 0.0, 0.0]
        self.calls = 0

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("embedding backend unavailable")
        return self.vector


class SlowEmbedder(Embedder):
    """Answers after a delay, long enough for later work to overtake it."""

    dimensions = 3

    def __init__(self, delay: float = 0.05):
        self.delay = delay

    async def embed(self, text: str) -> list[float]:
        await asyncio.sleep(self.delay)
        return [1.0, 0.0, 0.0]


class UnreachableIndex(VectorIndex):
    """Every operation fails as if the vector backend were down."""

    async def upsert(self, records: list[VectorRecord]) -> int:
        raise ConnectionError("vector index unreachable")

    async def get_by_ids(self, ids: list[str]) -> list[VectorRecord]:
        raise ConnectionError("vector index unreachable")

    async def query(
        self,
        vector: list[float],
        top_k: int,
        metadata_filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        raise ConnectionError("vector index unreachable")

    async def delete_by_ids(self, ids: list[str]) -> int:
        raise ConnectionError("vector index unreachable")


def metric_value(name: str, **labels: str) -> float:
    """Current value of a labelled Prometheus sample, 0 before first use."""
    return REGISTRY.get_sample_value(name, labels) or 0.0
