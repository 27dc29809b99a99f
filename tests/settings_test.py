import pytest
import structlog
from structlog.testing import capture_logs

from blogcore.background import BackgroundTasks
from blogcore.bootstrap import (
    build_content_service,
    build_translation_service,
    build_vector_index,
    setup_logging,
)
from blogcore.embeddings import OpenAIEmbedder
from blogcore.log_config import configure_logging
from blogcore.settings import Settings
from blogcore.vectors import FaissVectorIndex, InMemoryVectorIndex


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BLOGCORE_OPENAI_API_KEY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.db_pool_name == "default"
        assert settings.embedding_model == "text-embedding-3-large"
        assert settings.related_posts_count == 4
        assert settings.vector_backend == "faiss"
        assert settings.ai_enabled is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BLOGCORE_DB_POOL_NAME", "blog")
        monkeypatch.setenv("BLOGCORE_RELATED_POSTS_COUNT", "6")
        monkeypatch.setenv("BLOGCORE_OPENAI_API_KEY", "sk-test")

        settings = Settings(_env_file=None)

        assert settings.db_pool_name == "blog"
        assert settings.related_posts_count == 6
        assert settings.ai_enabled is True


class TestWiring:
    def test_without_api_key_embeddings_are_disabled(self):
        settings = Settings(_env_file=None, openai_api_key="", db_pool_name="blog")

        service = build_content_service(settings)

        assert service.db_name == "blog"
        assert service.embedding_service is None
        assert build_translation_service(service, settings) is None

    def test_with_api_key_openai_embedder_is_used(self):
        settings = Settings(
            _env_file=None, openai_api_key="sk-test", related_posts_count=2, vector_backend="memory"
        )

        service = build_content_service(settings)

        assert isinstance(service.embedding_service.embedder, OpenAIEmbedder)
        assert service.embedding_service.embedder.dimensions == 1536
        assert service.related_posts_count == 2
        assert build_translation_service(service, settings) is not None

    def test_vector_backend_selection(self, tmp_path):
        persistent = build_vector_index(Settings(_env_file=None, vector_data_dir=str(tmp_path)))
        local = build_vector_index(Settings(_env_file=None, vector_backend="memory"))

        assert isinstance(persistent, FaissVectorIndex)
        assert isinstance(local, InMemoryVectorIndex)


class TestLogging:
    def test_configure_logging_accepts_both_renderers(self):
        try:
            setup_logging(Settings(_env_file=None, log_level="DEBUG", log_json=True))
            structlog.get_logger("blogcore.test").info("json_configured")
            configure_logging("warning")
        finally:
            structlog.reset_defaults()

    @pytest.mark.asyncio
    async def test_background_failures_are_logged_with_context(self):
        runner = BackgroundTasks()

        async def broken():
            raise RuntimeError("index down")

        with capture_logs() as logs:
            runner.submit(broken(), name="index-post-7", identity_id=7, operation="index_post")
            await runner.drain()

        [entry] = [log for log in logs if log["event"] == "background_task_failed"]
        assert entry["identity_id"] == 7
        assert entry["operation"] == "index_post"
        assert entry["error"] == "index down"
