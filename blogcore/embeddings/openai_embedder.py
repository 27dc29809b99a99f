"""Embedder backed by the OpenAI embeddings API."""

from openai import AsyncOpenAI

from blogcore.embeddings.base import Embedder


class OpenAIEmbedder(Embedder):
    """Embeddings from the OpenAI API.

    Retries are left to the caller; a failed request raises the client's
    exception unchanged.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-large",
        dimensions: int = 1536,
        client: AsyncOpenAI | None = None,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        response = await self.client.embeddings.create(
            model=self.model,
            input=text,
            dimensions=self.dimensions,
        )
        if not response.data or not response.data[0].embedding:
            raise ValueError("Invalid response from OpenAI embeddings API")
        return list(response.data[0].embedding)
