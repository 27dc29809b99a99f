"""Embedding orchestration: index, related-post search and removal.

Related posts are a soft enhancement. Nothing in this module raises into the
read or write path; failures are logged and turned into empty or
unsuccessful results.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from blogcore.embeddings.base import Embedder
from blogcore.entities import Post, PostState
from blogcore.metrics import EMBEDDING_OPERATIONS
from blogcore.models import BulkEmbeddingResult, EmbeddingResult, RelatedPost
from blogcore.translation_linker import resolve_identity
from blogcore.vectors.base import VectorIndex, VectorMatch, VectorRecord

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 3
DEFAULT_RELATED_COUNT = 4
BULK_PAUSE_SECONDS = 0.2


def default_retry_wait() -> wait_base:
    """1s, 2s, then 4s between attempts"""
    return wait_exponential(multiplier=1, min=1, max=4)


def vector_id(identity_id: int) -> str:
    return f"post-{identity_id}"


def post_metadata(post: Post) -> dict[str, Any]:
    """Metadata stored with each vector; published_at is the effective publish time"""
    published_at = (
        post.created_at.isoformat()
        if post.state == PostState.PUBLISHED and post.created_at is not None
        else None
    )
    return {
        "post_id": resolve_identity(post),
        "title": post.title,
        "slug": post.slug,
        "state": post.state,
        "published_at": published_at,
        "locale": post.locale,
    }


def embedding_text(title: str, content: str) -> str:
    return f"{title}\n\n{content}"


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "embedding_attempt_failed",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


def _related_candidate(match: VectorMatch, now: datetime) -> RelatedPost | None:
    """None for neighbours that are not published yet; raises on malformed metadata"""
    metadata = match.metadata
    if metadata.get("state") != PostState.PUBLISHED.value:
        return None
    published_at = metadata.get("published_at")
    if not published_at:
        return None
    published = datetime.fromisoformat(published_at)
    if published.tzinfo is None:
        published = published.replace(tzinfo=UTC)
    if published > now:
        return None
    return RelatedPost(
        id=metadata["post_id"],
        slug=metadata["slug"],
        title=metadata["title"],
        score=match.score,
        locale=metadata.get("locale", "ko"),
    )


class EmbeddingService:
    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        retry_wait: wait_base | None = None,
    ):
        self.embedder = embedder
        self.index = index
        self._retry_wait = retry_wait or default_retry_wait()

    async def generate_embedding(self, title: str, content: str) -> list[float]:
        """Embed a post's text, retrying transient failures before re-raising"""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            wait=self._retry_wait,
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                vector = await self.embedder.embed(embedding_text(title, content))
        return vector

    async def index_post(self, post: Post) -> EmbeddingResult:
        """Embed an identity post and upsert it under ``post-{id}``"""
        identity_id = resolve_identity(post)
        if not post.is_identity:
            return EmbeddingResult(
                success=False,
                post_id=identity_id,
                error="Translations share their original's embedding",
            )

        vid = vector_id(identity_id)
        try:
            vector = await self.generate_embedding(post.title, post.content)
            await self.index.upsert(
                [VectorRecord(id=vid, values=vector, metadata=post_metadata(post))]
            )
        except Exception as exc:
            logger.error(
                "embedding_index_failed",
                operation="index_post",
                identity_id=identity_id,
                error=str(exc),
            )
            EMBEDDING_OPERATIONS.labels(operation="index_post", result="failed").inc()
            return EmbeddingResult(success=False, post_id=identity_id, error=str(exc))

        EMBEDDING_OPERATIONS.labels(operation="index_post", result="succeeded").inc()
        logger.info("post_indexed", identity_id=identity_id, vector_id=vid)
        return EmbeddingResult(success=True, post_id=identity_id, vector_id=vid)

    async def find_related(
        self,
        identity_id: int,
        k: int = DEFAULT_RELATED_COUNT,
        now: datetime | None = None,
    ) -> list[RelatedPost]:
        """Nearest published, already-visible neighbours of an identity post"""
        now = now or datetime.now(UTC)
        vid = vector_id(identity_id)
        try:
            records = await self.index.get_by_ids([vid])
            if not records or not records[0].values:
                logger.debug("embedding_missing", identity_id=identity_id)
                return []
            # One extra so the self match can be dropped
            matches = await self.index.query(
                records[0].values,
                top_k=k + 1,
                metadata_filter={"state": PostState.PUBLISHED.value},
            )
        except Exception as exc:
            logger.warning(
                "related_posts_failed",
                operation="find_related",
                identity_id=identity_id,
                error=str(exc),
            )
            EMBEDDING_OPERATIONS.labels(operation="find_related", result="failed").inc()
            return []

        related = []
        for match in matches:
            if match.id == vid:
                continue
            try:
                candidate = _related_candidate(match, now)
            # ValueError covers pydantic's ValidationError
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "related_match_skipped",
                    identity_id=identity_id,
                    vector_id=match.id,
                    error=str(exc),
                )
                EMBEDDING_OPERATIONS.labels(operation="find_related", result="skipped").inc()
                continue
            if candidate is not None:
                related.append(candidate)

        related.sort(key=lambda post: post.score, reverse=True)
        logger.debug("related_posts_found", identity_id=identity_id, count=len(related[:k]))
        return related[:k]

    async def delete_embedding(self, identity_id: int) -> bool:
        vid = vector_id(identity_id)
        try:
            await self.index.delete_by_ids([vid])
        except Exception as exc:
            logger.warning(
                "embedding_delete_failed",
                operation="delete_embedding",
                identity_id=identity_id,
                error=str(exc),
            )
            EMBEDDING_OPERATIONS.labels(operation="delete_embedding", result="failed").inc()
            return False
        EMBEDDING_OPERATIONS.labels(operation="delete_embedding", result="succeeded").inc()
        logger.info("embedding_deleted", identity_id=identity_id, vector_id=vid)
        return True

    async def bulk_index(
        self, posts: list[Post], pause: float = BULK_PAUSE_SECONDS
    ) -> BulkEmbeddingResult:
        """Index posts one after another with a short pause against rate limits"""
        results: list[EmbeddingResult] = []
        for post in posts:
            if results and pause > 0:
                await asyncio.sleep(pause)
            results.append(await self.index_post(post))

        succeeded = sum(1 for result in results if result.success)
        logger.info(
            "bulk_index_completed",
            total=len(posts),
            succeeded=succeeded,
            failed=len(results) - succeeded,
        )
        return BulkEmbeddingResult(
            total=len(posts),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )
