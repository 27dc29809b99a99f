import asyncpg
import docker
import pytest
import pytest_asyncio
from tenacity import wait_none
from testcontainers.postgres import PostgresContainer

from blogcore.db_context import DatabaseManager
from blogcore.embedding_service import EmbeddingService
from blogcore.embeddings import HashingEmbedder
from blogcore.engagement import EngagementAggregator
from blogcore.post_service import ContentService
from blogcore.schema import apply_schema, truncate_all
from blogcore.vectors import InMemoryVectorIndex
from tests.factories import TEST_DB


def _docker_available() -> bool:
    try:
        docker.from_env().ping()
    except Exception:
        return False
    return True


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    if not _docker_available():
        pytest.skip("Docker daemon is not reachable")
    with PostgresContainer("postgres:17") as postgres:
        yield postgres


@pytest_asyncio.fixture
async def db_pool(postgres_container):
    """Fresh pool with the blog schema applied and every table emptied."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    dsn = f"postgresql://{postgres_container.username}:{postgres_container.password}@{host}:{port}/{postgres_container.dbname}"

    # A new pool per test avoids sharing connections across event loops
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)
    async with pool.acquire() as conn:
        await apply_schema(conn)
        await truncate_all(conn)

    await DatabaseManager.add_pool(TEST_DB, pool)

    yield pool

    await DatabaseManager.remove_pool(TEST_DB)
    await pool.close()


@pytest.fixture
def vector_index():
    return InMemoryVectorIndex()


@pytest.fixture
def embedding_service(vector_index):
    return EmbeddingService(HashingEmbedder(), vector_index, retry_wait=wait_none())


@pytest_asyncio.fixture
async def content_service(db_pool, embedding_service):
    service = ContentService(db_name=TEST_DB, embedding_service=embedding_service)
    yield service
    await service.background.drain()


@pytest.fixture
def engagement(db_pool):
    return EngagementAggregator(db_name=TEST_DB)
