from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from models.retrieval import SourceDocument, StoredChunk, StoredChunkMetadata


class BaseVectorStore(ABC):
    """Abstract base class for vector stores acting as a similarity oracle."""

    def __init__(self, dimension: int, **kwargs: Any):
        self.dimension = dimension

    @abstractmethod
    def replace_chunks(
        self,
        document_id: str,
        embeddings: list[list[float]],
        contents: list[str],
        metadata_list: Optional[list[StoredChunkMetadata]] = None,
    ) -> None:
        """Replace every chunk of a document as one atomic unit.

        The i-th content gets ``chunk_index`` i. Passing empty lists removes
        the document's chunks. If the replacement fails, the previous chunk
        set must remain visible.
        """
        pass

    @abstractmethod
    def query(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[StoredChunk]:
        """Return up to ``limit`` chunks with similarity above ``threshold``.

        Results are ordered by similarity, highest first.
        """
        pass

    @abstractmethod
    def delete_all(self) -> None:
        """Delete all chunks from the store."""
        pass

    @property
    @abstractmethod
    def count(self) -> int:
        """Return the number of vectors in the store."""
        pass


class BaseSourceStore(ABC):
    """Abstract base class for the registry of chunk-owning sources."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> dict[str, SourceDocument]:
        """Resolve source ids; unknown ids are absent from the result."""
        pass

    @abstractmethod
    def upsert(self, document: SourceDocument) -> None:
        pass

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        pass

    def get(self, document_id: str) -> Optional[SourceDocument]:
        return self.get_many([document_id]).get(document_id)
