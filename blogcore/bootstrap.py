"""Builds pools and services from ``Settings``"""

import asyncpg
import structlog

from blogcore.ai_generation import AIGenerationService, OpenAITextGenerator
from blogcore.background import BackgroundTasks
from blogcore.db_context import DatabaseManager
from blogcore.embedding_service import EmbeddingService
from blogcore.embeddings import OpenAIEmbedder
from blogcore.engagement import EngagementAggregator
from blogcore.log_config import configure_logging
from blogcore.post_service import ContentService
from blogcore.settings import Settings, get_settings
from blogcore.tag_service import TagService
from blogcore.translation_service import TranslationService
from blogcore.vectors import FaissVectorIndex, InMemoryVectorIndex, VectorIndex

logger = structlog.get_logger(__name__)


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    configure_logging(settings.log_level, json=settings.log_json)


async def create_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Open an asyncpg pool and register it under ``settings.db_pool_name``"""
    settings = settings or get_settings()
    pool = await asyncpg.create_pool(
        settings.database_dsn,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    await DatabaseManager.add_pool(settings.db_pool_name, pool)
    logger.info("db_pool_created", pool=settings.db_pool_name)
    return pool


async def close_pool(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    pool = await DatabaseManager.remove_pool(settings.db_pool_name)
    if pool is not None:
        await pool.close()


def build_vector_index(settings: Settings | None = None) -> VectorIndex:
    settings = settings or get_settings()
    if settings.vector_backend == "memory":
        return InMemoryVectorIndex()
    return FaissVectorIndex(settings.vector_data_dir)


def build_embedding_service(
    settings: Settings | None = None, index: VectorIndex | None = None
) -> EmbeddingService | None:
    """None when no OpenAI key is configured"""
    settings = settings or get_settings()
    if not settings.ai_enabled:
        logger.info("embeddings_disabled", reason="no api key")
        return None
    embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )
    return EmbeddingService(embedder, index or build_vector_index(settings))


def build_content_service(
    settings: Settings | None = None,
    index: VectorIndex | None = None,
    background: BackgroundTasks | None = None,
) -> ContentService:
    settings = settings or get_settings()
    return ContentService(
        db_name=settings.db_pool_name,
        embedding_service=build_embedding_service(settings, index),
        background=background,
        related_posts_count=settings.related_posts_count,
    )


def build_ai_service(settings: Settings | None = None) -> AIGenerationService | None:
    settings = settings or get_settings()
    if not settings.ai_enabled:
        return None
    return AIGenerationService(
        OpenAITextGenerator(
            api_key=settings.openai_api_key, model=settings.generation_model
        )
    )


def build_translation_service(
    content: ContentService, settings: Settings | None = None
) -> TranslationService | None:
    settings = settings or get_settings()
    if not settings.ai_enabled:
        return None
    generator = OpenAITextGenerator(
        api_key=settings.openai_api_key, model=settings.translation_model
    )
    return TranslationService(content, AIGenerationService(generator))


def build_engagement(settings: Settings | None = None) -> EngagementAggregator:
    settings = settings or get_settings()
    return EngagementAggregator(db_name=settings.db_pool_name)


def build_tag_service(settings: Settings | None = None) -> TagService:
    settings = settings or get_settings()
    return TagService(db_name=settings.db_pool_name)
