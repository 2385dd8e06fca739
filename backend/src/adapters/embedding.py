import math
import os
from typing import Any, Optional

import openai
import requests
from openai import OpenAI

from adapters.base import BaseEmbedder
from adapters.utils import create_session_with_pooling
from errors import ProviderError
from models.chunk import Embedding

EMBEDDING_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

DEFAULT_OLLAMA_DIMENSION = 768
DEFAULT_TIMEOUT = 60.0


def split_token_count(total_tokens: int, count: int) -> int:
    """Approximate per-text token count from a batch total."""
    if count <= 0:
        return 0
    return math.ceil(total_tokens / count)


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI embedding provider."""

    def __init__(self, model: str = "text-embedding-3-small", **kwargs: Any):
        super().__init__(model, **kwargs)
        api_key = kwargs.pop("api_key", None) or os.environ.get("OPENAI_API_KEY")
        base_url = kwargs.pop("base_url", None)
        timeout = kwargs.pop("timeout", DEFAULT_TIMEOUT)

        # Retries belong to the caller, not to the client.
        self.client = OpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        self._dimension: Optional[int] = kwargs.get("dimensions")

    @property
    def dimension(self) -> int:
        return self._dimension or EMBEDDING_DIMENSIONS.get(self.model, 1536)

    def _create_embedding_params(self, input_data: str | list[str]) -> dict[str, Any]:
        """Build parameters for embedding API call."""
        params = {"model": self.model, "input": input_data}
        if self._dimension is not None:
            params["dimensions"] = self._dimension
        return params

    def _create(self, input_data: str | list[str]) -> Any:
        try:
            return self.client.embeddings.create(
                **self._create_embedding_params(input_data)
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI embedding request failed: {e}", "openai") from e

    def embed(self, text: str) -> Embedding:
        response = self._create(text)
        return Embedding(
            embedding=response.data[0].embedding,
            token_count=response.usage.total_tokens,
        )

    def embed_batch(self, texts: list[str]) -> list[Embedding]:
        if not texts:
            return []
        response = self._create(texts)
        token_count = split_token_count(response.usage.total_tokens, len(texts))
        return [
            Embedding(embedding=item.embedding, token_count=token_count)
            for item in response.data
        ]


class OllamaEmbedder(BaseEmbedder):
    """Ollama local embedding provider with connection pooling."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs: Any,
    ):
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self._dimension = kwargs.get("dimensions", DEFAULT_OLLAMA_DIMENSION)
        self._timeout = timeout
        self.session = create_session_with_pooling()

    @property
    def dimension(self) -> int:
        return self._dimension

    def _post_embed(self, input_data: str | list[str]) -> dict[str, Any]:
        """Send one request to Ollama's /api/embed endpoint."""
        try:
            response = self.session.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": input_data},
                timeout=self._timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Ollama embedding request failed: {e}", "ollama") from e

    def embed(self, text: str) -> Embedding:
        data = self._post_embed(text)
        embeddings = data.get("embeddings", [])
        if not embeddings:
            raise ProviderError("Ollama returned no embedding", "ollama")
        return Embedding(
            embedding=embeddings[0],
            token_count=data.get("prompt_eval_count", 0),
        )

    def embed_batch(self, texts: list[str]) -> list[Embedding]:
        if not texts:
            return []

        data = self._post_embed(texts)
        token_count = split_token_count(data.get("prompt_eval_count", 0), len(texts))
        return [
            Embedding(embedding=vector, token_count=token_count)
            for vector in data.get("embeddings", [])
        ]
