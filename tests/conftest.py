import sys
import zlib
from pathlib import Path
from typing import Any, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend" / "src"))

from adapters import EmbeddingBatcher
from adapters.base import BaseEmbedder
from models import Embedding, StoredChunk, StoredChunkMetadata
from stores import BaseVectorStore, JSONSourceStore, VectorStore


class MockEmbedder(BaseEmbedder):
    """Deterministic bag-of-words embedder for testing.

    Token counts are the number of whitespace-separated words.
    """

    def __init__(self, dimension: int = 64, **kwargs: Any):
        super().__init__("mock-embedder", **kwargs)
        self._dimension = dimension
        self.embed_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in text.lower().split():
            vector[zlib.crc32(word.encode("utf-8")) % self._dimension] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector

    def embed(self, text: str) -> Embedding:
        self.embed_calls.append(text)
        return Embedding(embedding=self._vector(text), token_count=len(text.split()))

    def embed_batch(self, texts: list[str]) -> list[Embedding]:
        self.batch_calls.append(list(texts))
        return [
            Embedding(embedding=self._vector(t), token_count=len(t.split()))
            for t in texts
        ]


class StaticVectorStore(BaseVectorStore):
    """Similarity oracle that serves a fixed, pre-ranked candidate list."""

    def __init__(self, candidates: Optional[list[StoredChunk]] = None, dimension: int = 64):
        super().__init__(dimension)
        self.candidates = candidates or []
        self.queries: list[dict[str, Any]] = []

    def replace_chunks(
        self,
        document_id: str,
        embeddings: list[list[float]],
        contents: list[str],
        metadata_list: Optional[list[StoredChunkMetadata]] = None,
    ) -> None:
        raise NotImplementedError

    def query(
        self, query_embedding: list[float], threshold: float, limit: int
    ) -> list[StoredChunk]:
        self.queries.append({"threshold": threshold, "limit": limit})
        return [c for c in self.candidates if c.similarity > threshold][:limit]

    def delete_all(self) -> None:
        self.candidates = []

    @property
    def count(self) -> int:
        return len(self.candidates)


def make_candidate(
    index: int,
    similarity: float,
    token_estimate: Optional[int] = 100,
    document_id: str = "doc-1",
    content: Optional[str] = None,
) -> StoredChunk:
    return StoredChunk(
        id=f"chunk-{index}",
        document_id=document_id,
        content=content or f"Content of chunk {index}",
        chunk_index=index,
        metadata=StoredChunkMetadata(token_estimate=token_estimate),
        similarity=similarity,
    )


@pytest.fixture
def mock_embedder() -> MockEmbedder:
    return MockEmbedder(dimension=64)


@pytest.fixture
def batcher(mock_embedder: MockEmbedder) -> EmbeddingBatcher:
    return EmbeddingBatcher(mock_embedder, batch_size=100)


@pytest.fixture
def temp_storage_dir(tmp_path: Path) -> Path:
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return storage_dir


@pytest.fixture
def temp_vector_store(
    temp_storage_dir: Path, mock_embedder: MockEmbedder
) -> VectorStore:
    index_path = temp_storage_dir / "test.index"
    metadata_path = temp_storage_dir / "test.json"
    return VectorStore(
        dimension=mock_embedder.dimension,
        index_path=index_path,
        metadata_path=metadata_path,
    )


@pytest.fixture
def source_store(temp_storage_dir: Path) -> JSONSourceStore:
    return JSONSourceStore(temp_storage_dir / "sources.json")


@pytest.fixture
def temp_config(tmp_path: Path) -> Path:
    config_content = """
[embedding]
provider = "ollama"
model = "nomic-embed-text"
base_url = "${OLLAMA_TEST_URL:-http://localhost:11434}"
batch_size = 16
dimensions = 32

[storage]
directory = "storage"

[chunking]
chunk_size = 500
chunk_overlap = 50
with_document_context = true

[transcript]
max_chunk_size = 400
overlap_size = 50

[tokens]
estimator = "chars"

[retrieval]
top_k = 3
similarity_threshold = 0.5
max_tokens = 2000
keyword_boost = 0.4
hybrid = true
"""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_content)
    return config_path
