from pathlib import Path
from typing import Any, Optional

from .base import BaseSourceStore, BaseVectorStore
from .faiss import FAISSVectorStore
from .sources import JSONSourceStore

VectorStore = FAISSVectorStore


def create_vector_store(
    provider: str,
    dimension: int,
    **kwargs: Any,
) -> BaseVectorStore:
    """Create a vector store instance based on provider.

    Args:
        provider: Provider name (currently only "faiss" supported)
        dimension: Embedding dimension
        **kwargs: Additional provider-specific parameters

    Returns:
        BaseVectorStore instance
    """
    if provider == "faiss":
        return FAISSVectorStore(dimension=dimension, **kwargs)
    else:
        raise ValueError(f"Unknown vector store provider: {provider}")


def create_source_store(path: Optional[Path] = None) -> BaseSourceStore:
    """Create the source registry, persisted at ``path`` when given."""
    return JSONSourceStore(path)


__all__ = [
    "BaseSourceStore",
    "BaseVectorStore",
    "FAISSVectorStore",
    "JSONSourceStore",
    "VectorStore",
    "create_source_store",
    "create_vector_store",
]
